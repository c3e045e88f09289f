"""Catalogue of recognition languages, keyed by Tesseract language code."""

LANGUAGES = {
    "eng": "English",
    "ara": "Arabic",
    "chi_sim": "Chinese (Simplified)",
    "chi_tra": "Chinese (Traditional)",
    "fra": "French",
    "deu": "German",
    "hin": "Hindi",
    "ita": "Italian",
    "jpn": "Japanese",
    "kor": "Korean",
    "por": "Portuguese",
    "rus": "Russian",
    "spa": "Spanish",
    "tha": "Thai",
    "tur": "Turkish",
    "vie": "Vietnamese",
}


def split_codes(code: str) -> list[str]:
    """Split a ``+``-joined multi-language code such as ``"eng+fra"``."""
    return [part for part in code.split("+") if part]


def is_known(code: str) -> bool:
    parts = split_codes(code)
    return bool(parts) and all(part in LANGUAGES for part in parts)


def display_name(code: str) -> str:
    """Human-readable name, e.g. ``"English + French"``; unknown codes pass through."""
    return " + ".join(LANGUAGES.get(part, part) for part in split_codes(code))
