from typing import List, NamedTuple, Tuple

# ------------------------------------
# Emotion Keyword Table
# ------------------------------------

# Checked in this order, first match wins. Heavy negative emotions come first
# so serious content is never labelled as something lighter.
EMOTION_KEYWORDS: List[Tuple[str, List[str]]] = [
    ("despair", ["die", "death", "suicide", "kill", "end", "pain", "hurt", "depressed", "awful"]),
    ("anger", ["hate", "angry", "mad", "furious", "rage", "annoyed", "frustrated"]),
    ("fear", ["scared", "afraid", "terrified", "anxious", "worried", "nervous"]),
    ("sadness", ["sad", "crying", "tears", "lonely", "empty", "broken", "devastated"]),
    ("joy", ["happy", "excited", "amazing", "wonderful", "great", "fantastic", "delighted"]),
    ("love", ["love", "adore", "cherish", "care", "affection", "heart", "romance"]),
    ("peace", ["calm", "peaceful", "quiet", "serene", "tranquil", "relaxed", "zen"]),
    ("warmth", ["warm", "cozy", "comfort", "embrace", "gentle", "tender"]),
    ("grateful", ["thankful", "grateful", "appreciate", "blessed", "lucky"]),
    ("hopeful", ["hope", "future", "dream", "wish", "aspire", "optimistic"]),
    ("excitement", ["excited", "thrilled", "eager", "energetic", "pumped"]),
    ("nostalgia", ["remember", "back then", "used to", "childhood", "old", "past"]),
    ("contemplative", ["think", "wonder", "ponder", "reflect", "consider", "meditate"]),
]

DEFAULT_EMOTION = "contemplative"

EMOTION_CATEGORIES = [emotion for emotion, _ in EMOTION_KEYWORDS]

# ------------------------------------
# Intensity Boosters
# ------------------------------------

INTENSITY_BOOSTS = {
    "despair": ["really", "so", "very", "extremely", "totally", "completely"],
    "anger": ["really", "so", "very", "extremely", "totally", "fucking"],
    "joy": ["really", "so", "very", "extremely", "amazing", "incredible"],
    "love": ["really", "so", "very", "deeply", "truly", "completely"],
}

GENERIC_BOOSTS = ["really", "so", "very"]

BASE_INTENSITY = 0.5
BOOST_STEP = 0.2
MAX_LENGTH_BONUS = 0.3


class KeywordEmotion(NamedTuple):
    emotion: str
    intensity: float


def detect_keyword_emotion(text: str) -> str:
    """
    Returns the first emotion category whose keywords appear in the text.
    Falls back to 'contemplative' when nothing matches.
    """
    lowered = (text or "").lower()
    for emotion, keywords in EMOTION_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return emotion
    return DEFAULT_EMOTION


def calculate_intensity(text: str, emotion: str) -> float:
    text = text or ""
    lowered = text.lower()
    boosts = INTENSITY_BOOSTS.get(emotion, GENERIC_BOOSTS)
    boost_count = sum(1 for boost in boosts if boost in lowered)

    intensity = BASE_INTENSITY
    intensity += boost_count * BOOST_STEP
    intensity += min(len(text) / 100, MAX_LENGTH_BONUS)  # Longer text reads as more intense
    return min(intensity, 1.0)


def classify(text: str) -> KeywordEmotion:
    """
    Keyword-only emotion classification. Deterministic and never fails,
    so there is always a label even when the remote analyzer is unreachable.
    """
    emotion = detect_keyword_emotion(text)
    return KeywordEmotion(emotion, calculate_intensity(text, emotion))
