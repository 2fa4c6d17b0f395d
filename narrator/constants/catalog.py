"""Languages, voices and fonts offered to the editor."""

LANGUAGES: dict[str, str] = {
    "pt": "Portuguese",
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
}

# Prebuilt Gemini TTS voices
VOICES: dict[str, str] = {
    "Zephyr": "Female 1",
    "Charon": "Female 2",
    "Kore": "Male 1",
    "Puck": "Male 2",
    "Fenrir": "Male 3",
}

# Font family -> candidate font files (macOS -> Linux fallback).
# Families without a local file fall back to DEFAULT_FONT_CANDIDATES.
FONT_FAMILIES: dict[str, list[str]] = {
    "Anton": [
        "/usr/share/fonts/truetype/google-fonts/Anton-Regular.ttf",
        "/Library/Fonts/Anton-Regular.ttf",
    ],
    "Oswald": [
        "/usr/share/fonts/truetype/google-fonts/Oswald-Regular.ttf",
        "/Library/Fonts/Oswald-Regular.ttf",
    ],
    "Bebas Neue": [
        "/usr/share/fonts/truetype/google-fonts/BebasNeue-Regular.ttf",
        "/Library/Fonts/BebasNeue-Regular.ttf",
    ],
    "Montserrat": [
        "/usr/share/fonts/truetype/google-fonts/Montserrat-Regular.ttf",
        "/Library/Fonts/Montserrat-Regular.ttf",
    ],
    "Montserrat Bold": [
        "/usr/share/fonts/truetype/google-fonts/Montserrat-Bold.ttf",
        "/Library/Fonts/Montserrat-Bold.ttf",
    ],
    "Poppins": [
        "/usr/share/fonts/truetype/google-fonts/Poppins-Regular.ttf",
        "/Library/Fonts/Poppins-Regular.ttf",
    ],
    "Poppins Bold": [
        "/usr/share/fonts/truetype/google-fonts/Poppins-Bold.ttf",
        "/Library/Fonts/Poppins-Bold.ttf",
    ],
    "Roboto": [
        "/usr/share/fonts/truetype/roboto/unhinted/RobotoTTF/Roboto-Regular.ttf",
        "/usr/share/fonts/truetype/roboto/Roboto-Regular.ttf",
    ],
    "Roboto Bold": [
        "/usr/share/fonts/truetype/roboto/unhinted/RobotoTTF/Roboto-Bold.ttf",
        "/usr/share/fonts/truetype/roboto/Roboto-Bold.ttf",
    ],
    "Lato": [
        "/usr/share/fonts/truetype/lato/Lato-Regular.ttf",
    ],
    "Lato Bold": [
        "/usr/share/fonts/truetype/lato/Lato-Bold.ttf",
    ],
    "Open Sans": [
        "/usr/share/fonts/truetype/open-sans/OpenSans-Regular.ttf",
    ],
    "Open Sans Bold": [
        "/usr/share/fonts/truetype/open-sans/OpenSans-Bold.ttf",
    ],
}

DEFAULT_FONT_CANDIDATES: list[str] = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/System/Library/Fonts/Supplemental/Arial.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
]

DEFAULT_BOLD_FONT_CANDIDATES: list[str] = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
]

SUBTITLE_FONT_FAMILY = "Poppins"


def language_name(code: str) -> str:
    return LANGUAGES.get(code, code)
