"""
Lexicon-based emotion tagging of transcript sentences.

Each sentence gets a label and a confidence; the labels feed voice-style
selection for the expressive voice mode.
"""
import re
from collections import defaultdict
from typing import NamedTuple

SECONDS_PER_SENTENCE = 3

EMOTIONS = ("happy", "sad", "angry", "fearful", "surprised", "calm", "curious", "neutral")

# Checked in this order; on equal scores the earlier emotion wins.
EMOTION_KEYWORDS = {
    "happy": ("happy", "joy", "excited", "wonderful", "great", "amazing", "love", "fantastic", "!", "😊", "😄"),
    "sad": ("sad", "sorry", "unfortunately", "tragic", "terrible", "awful", "cry", "tears", "😢", "😭"),
    "angry": ("angry", "furious", "mad", "hate", "damn", "stupid", "idiot", "😠", "😡"),
    "fearful": ("afraid", "scared", "fear", "terrified", "worried", "anxious", "😨", "😰"),
    "surprised": ("wow", "amazing", "incredible", "unbelievable", "shocked", "!", "😲", "😮"),
    "calm": ("calm", "peaceful", "relaxed", "serene", "quiet", "gentle"),
}

_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]+")


class EmotionTag(NamedTuple):
    emotion: str
    confidence: float


def split_sentences(text: str) -> list[str]:
    """Split on sentence terminators; text without any terminator is one sentence."""
    sentences = [s.strip() for s in _SENTENCE_RE.findall(text or "") if s.strip()]
    if not sentences and (text or "").strip():
        sentences = [text.strip()]
    return sentences


def analyze_sentence(sentence: str) -> EmotionTag:
    lowered = sentence.lower()
    best_score = 0
    best = "neutral"
    for emotion, keywords in EMOTION_KEYWORDS.items():
        score = sum(1 for keyword in keywords if keyword in lowered)
        if score > best_score:
            best_score = score
            best = emotion

    if lowered.rstrip().endswith("?"):
        best = "curious"
        best_score = max(best_score, 1)

    confidence = min(best_score / 3, 1.0)
    return EmotionTag(best, confidence if confidence > 0 else 0.5)


def analyze_text(text: str, timestamps: list[float] | None = None) -> list[dict]:
    """Tag every sentence; timestamps default to 3 seconds per sentence."""
    timestamps = timestamps or []
    tags = []
    for i, sentence in enumerate(split_sentences(text)):
        tag = analyze_sentence(sentence)
        tags.append({
            "timestamp": timestamps[i] if i < len(timestamps) else i * SECONDS_PER_SENTENCE,
            "emotion": tag.emotion,
            "confidence": tag.confidence,
            "text": sentence,
        })
    return tags


def dominant_emotion(tags: list[dict]) -> str | None:
    """Label with the highest summed confidence; ties go to the one seen first."""
    if not tags:
        return None
    totals = defaultdict(float)
    for tag in tags:
        totals[tag["emotion"]] += tag["confidence"]
    return max(totals, key=totals.get)
