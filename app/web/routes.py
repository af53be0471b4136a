from __future__ import annotations

from flask import current_app, flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required

from app.services.bookmarks import create_bookmark, delete_bookmark, list_bookmarks
from app.services.changes import head_cursor
from app.services.common import clean_text, validate_bookmark_input
from app.web import web_bp


@web_bp.route("/")
def index():
    if current_user.is_authenticated:
        return redirect(url_for("web.dashboard"))
    return render_template("index.html")


@web_bp.route("/dashboard")
@login_required
def dashboard():
    # Cursor first: a write landing between the two reads triggers a reload.
    cursor = head_cursor(current_user.id)
    return render_template(
        "dashboard.html",
        bookmarks=list_bookmarks(current_user.id),
        cursor=cursor,
        poll_ms=int(current_app.config["DASHBOARD_POLL_SECONDS"] * 1000),
    )


@web_bp.route("/bookmarks", methods=["POST"])
@login_required
def bookmarks_create():
    url = clean_text(request.form.get("url"))
    title = clean_text(request.form.get("title"))
    error = validate_bookmark_input(url, title)
    if error:
        flash(error.capitalize() + ".", "error")
        return redirect(url_for("web.dashboard"))

    create_bookmark(current_user.id, url, title)
    return redirect(url_for("web.dashboard"))


@web_bp.route("/bookmarks/<int:bookmark_id>/delete", methods=["POST"])
@login_required
def bookmarks_delete(bookmark_id: int):
    # Deleting something already gone elsewhere is not an error for the viewer.
    delete_bookmark(current_user.id, bookmark_id)
    return redirect(url_for("web.dashboard"))
