# =========================================
#     Relay — Profanity filter
#     Exact, case-insensitive, whole-word blocklist
# =========================================

import requests

from relay.config import PROFANITY_URLS, PROFANITY_FETCH_TIMEOUT
from relay.logger import log_info, log_warning, log_exception

_blocked_words = frozenset()


def _parse_word_list(url: str, response) -> list:
    if url.endswith(".json"):
        data = response.json()
        if not isinstance(data, list):
            raise ValueError(f"expected a JSON list from {url}")
        return [w for w in data if isinstance(w, str)]
    return response.text.split("\n")


def fetch_words(url: str, timeout: float = PROFANITY_FETCH_TIMEOUT) -> set:
    r = requests.get(url, timeout=timeout)
    r.raise_for_status()
    return {w.strip().lower() for w in _parse_word_list(url, r) if w.strip()}


def load_profanity_lists(urls=None) -> int:
    """
    Fetch every configured word list and install the union.
    A source that fails is skipped; if all fail the blocklist stays empty
    and filtering is effectively off. Never raises.
    """
    urls = PROFANITY_URLS if urls is None else urls
    words = set()
    loaded = 0

    for url in urls:
        try:
            words |= fetch_words(url)
            loaded += 1
        except (requests.RequestException, ValueError):
            log_exception("content_filter", f"Error loading profanity list from {url}")

    if urls and not loaded:
        log_warning("content_filter", "No profanity list could be loaded — filtering disabled.")

    set_words(words)
    log_info("content_filter", f"Loaded {len(words)} profane words from {loaded} source(s).")
    return len(words)


def set_words(words):
    global _blocked_words
    _blocked_words = frozenset(w.strip().lower() for w in words if w and w.strip())


def word_count() -> int:
    return len(_blocked_words)


def contains_profanity(message: str) -> bool:
    """
    "HELLO world" matches "hello"; "helloworld" does not.
    """
    if not message or not _blocked_words:
        return False
    return any(word in _blocked_words for word in message.lower().split())
