"""
Caption tracks from transcript/translation segments: SRT, WebVTT and JSON.
"""
import json
import logging
import re
from dataclasses import dataclass

from .emotions import SECONDS_PER_SENTENCE, split_sentences
from .utils import artifact_path, relative_to_media

logger = logging.getLogger(__name__)

JSON_VERSION = "1.0"

_CUE_RE = re.compile(r"(\d\d:\d\d:\d\d[,.]\d\d\d)\s+-->\s+(\d\d:\d\d:\d\d[,.]\d\d\d)")


@dataclass
class SubtitleSegment:
    start: float  # seconds
    end: float  # seconds
    text: str
    translated_text: str = ""

    @property
    def caption(self) -> str:
        return self.translated_text or self.text


def format_timestamp(seconds: float, sep: str = ",") -> str:
    total_ms = int(round(seconds * 1000))
    h, rest = divmod(total_ms, 3_600_000)
    m, rest = divmod(rest, 60_000)
    s, ms = divmod(rest, 1000)
    return f"{h:02}:{m:02}:{s:02}{sep}{ms:03}"


def parse_timestamp(ts: str) -> float:
    h, m, rest = ts.replace(",", ".").split(":")
    s, ms = rest.split(".")
    return int(h) * 3600 + int(m) * 60 + int(s) + int(ms) / 1000.0


def build_segments(segments: list[dict] | None, text: str, translated_text: str = "") -> list[SubtitleSegment]:
    """
    Pair source segments with translated sentences.

    ``segments`` are transcript segments with ``start``/``end``/``text``; when
    there are none the text is split into sentences of fixed length.
    Translated sentences are attached by position.
    """
    if segments:
        out = [SubtitleSegment(float(s["start"]), float(s["end"]), str(s["text"]).strip()) for s in segments]
    else:
        out = [
            SubtitleSegment(float(i * SECONDS_PER_SENTENCE), float((i + 1) * SECONDS_PER_SENTENCE), sentence)
            for i, sentence in enumerate(split_sentences(text))
        ]
    translated = split_sentences(translated_text) if translated_text else []
    for seg, sentence in zip(out, translated):
        seg.translated_text = sentence
    return out


def to_srt(segments: list[SubtitleSegment]) -> str:
    blocks = [
        f"{i}\n{format_timestamp(s.start)} --> {format_timestamp(s.end)}\n{s.caption}\n"
        for i, s in enumerate(segments, 1)
    ]
    return "\n".join(blocks)


def to_vtt(segments: list[SubtitleSegment]) -> str:
    blocks = [
        f"{i}\n{format_timestamp(s.start, '.')} --> {format_timestamp(s.end, '.')}\n{s.caption}\n"
        for i, s in enumerate(segments, 1)
    ]
    return "WEBVTT\n\n" + "\n".join(blocks)


def to_json(segments: list[SubtitleSegment]) -> str:
    data = {
        "version": JSON_VERSION,
        "subtitles": [
            {
                "id": i,
                "start": s.start,
                "end": s.end,
                "text": s.text,
                "translatedText": s.translated_text,
            }
            for i, s in enumerate(segments, 1)
        ],
    }
    return json.dumps(data, ensure_ascii=False, indent=2)


def parse_json(content: str) -> list[SubtitleSegment]:
    data = json.loads(content)
    return [
        SubtitleSegment(
            start=item["start"],
            end=item["end"],
            text=item["text"],
            translated_text=item.get("translatedText", ""),
        )
        for item in sorted(data.get("subtitles", []), key=lambda item: item["id"])
    ]


def parse_srt(content: str) -> list[SubtitleSegment]:
    out = []
    for block in re.split(r"\n\s*\n", content.strip()):
        lines = [ln for ln in block.splitlines() if ln.strip()]
        if lines and lines[0].strip().isdigit():
            lines = lines[1:]
        if not lines:
            continue
        m = _CUE_RE.match(lines[0])
        if not m:
            continue
        text = " ".join(ln.strip() for ln in lines[1:])
        out.append(SubtitleSegment(parse_timestamp(m.group(1)), parse_timestamp(m.group(2)), text))
    return out


def write_subtitles(job_id, segments: list[SubtitleSegment]) -> dict:
    """Write the three caption files; returns their MEDIA_ROOT-relative paths."""
    written = {}
    for ext, render in (("srt", to_srt), ("vtt", to_vtt), ("json", to_json)):
        path = artifact_path(job_id, "subtitles", ext)
        path.write_text(render(segments), encoding="utf-8")
        written[ext] = relative_to_media(path)
    logger.info("Wrote %d subtitle cues for job %s", len(segments), job_id)
    return written
