import re

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_LANGUAGE = "ro"


class LanguageDetectionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    language: str
    confidence: float = Field(ge=0.0, le=1.0)
    reasons: list[str] = Field(default_factory=list)


ROMANIAN_DIACRITICS = re.compile(r"[ăâîșțşţĂÂÎȘȚŞŢ]")
ROMANIAN_LETTER_PATTERNS = re.compile(r"\b(ți|și|ău|ea|ia|ie|ii|uri|oare|este|sunt)\b", re.IGNORECASE)
ENGLISH_ENDINGS = re.compile(r"\b\w+(ing|ed|tion|ly|ness|ment|able|ible)\b", re.IGNORECASE)

ROMANIAN_FOOD_WORDS = (
    "ciorbă", "supă", "mici", "papanași", "mămăligă", "sarmale", "cozonac",
    "plăcintă", "gogoșari", "ardei", "roșii", "castraveți", "ceapă",
    "usturoi", "brânză", "telemea", "cașcaval", "smântână", "lapte",
    "ouă", "pui", "porc", "vită", "miel", "peste", "somon", "crap",
    "pâine", "chiflă", "lipie", "covrigi", "prăjituri", "tort",
    "înghețată", "cafea", "ceai", "suc", "bere", "vin", "țuică", "pălincă",
)  # fmt: skip
ROMANIAN_COOKING_METHODS = (
    "la grătar", "la cuptor", "prăjit", "fiert", "copt", "afumat",
    "marinat", "condimentat", "umplut", "învelit",
)  # fmt: skip
ROMANIAN_DESCRIPTORS = (
    "proaspăt", "cald", "rece", "picant", "dulce", "sărat", "acru",
    "tradițional", "casnic", "de casă", "artizanal",
)  # fmt: skip
ROMANIAN_PREPOSITIONS = (
    "cu", "și", "de", "la", "în", "pe", "din", "pentru", "sau", "fără", "plus", "minus", "extra",
)  # fmt: skip

ENGLISH_FOOD_WORDS = (
    "burger", "pizza", "pasta", "salad", "soup", "sandwich", "steak",
    "chicken", "beef", "pork", "fish", "salmon", "tuna", "shrimp",
    "cheese", "bread", "rice", "noodles", "fries", "chips",
    "cake", "pie", "ice cream", "chocolate", "vanilla",
    "coffee", "tea", "juice", "water", "beer", "wine", "cocktail",
)  # fmt: skip
ENGLISH_COOKING_METHODS = (
    "grilled", "fried", "baked", "roasted", "steamed", "boiled",
    "sautéed", "braised", "smoked", "marinated", "seasoned",
)  # fmt: skip
ENGLISH_DESCRIPTORS = (
    "fresh", "hot", "cold", "spicy", "sweet", "salty", "sour",
    "crispy", "tender", "juicy", "homemade", "organic", "premium",
)  # fmt: skip
ENGLISH_PREPOSITIONS = (
    "with", "and", "or", "the", "a", "an", "in", "on", "at", "from", "to", "for", "without",
    "plus", "extra",
)  # fmt: skip


def _found(words: tuple[str, ...], text: str) -> list[str]:
    return [word for word in words if word in text]


def _found_whole_words(words: tuple[str, ...], text: str) -> list[str]:
    return [word for word in words if re.search(rf"\b{re.escape(word)}\b", text)]


def _score_romanian(text: str) -> tuple[float, list[str]]:
    reasons: list[str] = []
    score = 0.0
    lower = text.lower()

    if ROMANIAN_DIACRITICS.search(text):
        score += 0.4
        reasons.append("Contains Romanian diacritics")

    if ROMANIAN_LETTER_PATTERNS.search(text):
        score += 0.2
        reasons.append("Contains Romanian letter patterns")

    food_words = _found(ROMANIAN_FOOD_WORDS, lower)
    if food_words:
        score += min(len(food_words) * 0.15, 0.3)
        reasons.append(f"Contains Romanian food words: {', '.join(food_words[:3])}")

    cooking = _found(ROMANIAN_COOKING_METHODS, lower)
    if cooking:
        score += 0.2
        reasons.append(f"Contains Romanian cooking methods: {cooking[0]}")

    descriptors = _found(ROMANIAN_DESCRIPTORS, lower)
    if descriptors:
        score += 0.1
        reasons.append(f"Contains Romanian descriptors: {descriptors[0]}")

    prepositions = _found_whole_words(ROMANIAN_PREPOSITIONS, lower)
    if prepositions:
        score += min(len(prepositions) * 0.05, 0.1)
        reasons.append(f"Contains Romanian prepositions: {', '.join(prepositions[:2])}")

    return min(score, 1.0), reasons


def _score_english(text: str) -> tuple[float, list[str]]:
    reasons: list[str] = []
    score = 0.0
    lower = text.lower()

    if ENGLISH_ENDINGS.search(text):
        score += 0.2
        reasons.append("Contains English word endings")

    food_words = _found(ENGLISH_FOOD_WORDS, lower)
    if food_words:
        score += min(len(food_words) * 0.15, 0.3)
        reasons.append(f"Contains English food words: {', '.join(food_words[:3])}")

    cooking = _found(ENGLISH_COOKING_METHODS, lower)
    if cooking:
        score += 0.2
        reasons.append(f"Contains English cooking methods: {cooking[0]}")

    descriptors = _found(ENGLISH_DESCRIPTORS, lower)
    if descriptors:
        score += 0.1
        reasons.append(f"Contains English descriptors: {descriptors[0]}")

    prepositions = _found_whole_words(ENGLISH_PREPOSITIONS, lower)
    if prepositions:
        score += min(len(prepositions) * 0.05, 0.1)
        reasons.append(f"Contains English prepositions: {', '.join(prepositions[:2])}")

    # Diacritics outweigh any English hints
    if ROMANIAN_DIACRITICS.search(text):
        score = max(0.0, score - 0.5)

    return min(score, 1.0), reasons


def detect_language(text: str | None) -> LanguageDetectionResult:
    """Guess whether a product name is Romanian or English.

    Short or ambiguous names fall back to Romanian, the catalog's primary
    language.
    """
    if not text or len(text.strip()) < 2:
        return LanguageDetectionResult(
            language=DEFAULT_LANGUAGE,
            confidence=0.1,
            reasons=["Text too short, defaulting to Romanian"],
        )

    ro_score, ro_reasons = _score_romanian(text)
    en_score, en_reasons = _score_english(text)

    if ro_score > en_score:
        return LanguageDetectionResult(language="ro", confidence=ro_score, reasons=ro_reasons)
    if en_score > ro_score:
        return LanguageDetectionResult(language="en", confidence=en_score, reasons=en_reasons)

    return LanguageDetectionResult(
        language=DEFAULT_LANGUAGE,
        confidence=max(ro_score, 0.2),
        reasons=["Ambiguous language detection, defaulting to Romanian", *ro_reasons, *en_reasons],
    )
