from urllib.parse import urlparse


URL_SCHEMES = {"http", "https"}


def is_url_shaped(url: str) -> bool:
    if not url:
        return False
    parsed = urlparse(url.strip())
    return parsed.scheme.lower() in URL_SCHEMES and bool(parsed.netloc)


def clean_text(value) -> str:
    return str(value or "").strip()


def validate_bookmark_input(url: str, title: str) -> str | None:
    if not url or not title:
        return "url and title are required"
    if not is_url_shaped(url):
        return "url must be an http(s) address"
    return None
