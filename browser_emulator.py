# browser_emulator.py
from urllib.parse import urlparse
from typing import Optional, Dict

from media_finder import MediaKind, classify_reference

# Specific headers for certain domains if needed
DOMAIN_SPECIFIC_HEADERS: Dict[str, Dict[str, str]] = {
    'imgur.com': {"User-Agent": "curl/8.1.1", "Accept": "*/*"},
    'i.imgur.com': {"User-Agent": "curl/8.1.1", "Accept": "*/*"},
}

DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/114.0.0.0 Safari/537.36"

ACCEPT_BY_DEST: Dict[str, str] = {
    "image": "image/avif,image/webp,image/apng,image/svg+xml,image/*,*/*;q=0.8",
    "video": "video/webm,video/ogg,video/*;q=0.9,application/ogg;q=0.7,audio/*;q=0.6,*/*;q=0.5",
}


def get_request_headers(
    target_url: str,
    media_kind: Optional[MediaKind] = None
) -> Dict[str, str]:
    """
    Generates headers for a media request, mimicking a browser.
    When media_kind is not given it is guessed from the URL suffix;
    unknown kinds get a generic '*/*' request.
    """
    if media_kind is None:
        media_kind = classify_reference(target_url)

    sec_fetch_dest = media_kind.value if media_kind else "empty"

    headers = {
        "User-Agent": DEFAULT_USER_AGENT,
        "Accept": ACCEPT_BY_DEST.get(sec_fetch_dest, "*/*"),
        "Accept-Encoding": "gzip, deflate",
        "Accept-Language": "en-US,en;q=0.9",
        "Connection": "keep-alive",
        "Sec-Fetch-Dest": sec_fetch_dest,
        "Sec-Fetch-Mode": "no-cors",
        "Sec-Fetch-Site": "none",
    }

    # Domain-specific headers override the general ones.
    target_domain = urlparse(target_url).hostname
    if target_domain and target_domain in DOMAIN_SPECIFIC_HEADERS:
        headers.update(DOMAIN_SPECIFIC_HEADERS[target_domain])

    return headers
