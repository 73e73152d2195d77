import json
from pathlib import Path

import httpx
import pytest

from api import media
from api.exceptions import FatalStageError
from api.lipsync import LipSyncEngine, describe_phoneme, parse_mouth_cues


@pytest.fixture
def clip(tmp_path):
    video = tmp_path / "in.mp4"
    video.write_bytes(b"original-video")
    audio = tmp_path / "voice.wav"
    media.write_silence(str(audio), seconds=1)
    return str(video), str(audio), str(tmp_path / "out.mp4"), str(tmp_path / "cues.json")


def _fail_on_request(request):
    pytest.fail(f"unexpected request to {request.url}")


def test_mouth_cues():
    data = {"metadata": {}, "mouthCues": [{"start": 0.0, "end": 0.2, "value": "X"}, {"start": 0.2, "end": 0.5, "value": "D"}]}
    assert parse_mouth_cues(data) == [{"start": 0.0, "end": 0.2, "value": "X"}, {"start": 0.2, "end": 0.5, "value": "D"}]
    assert parse_mouth_cues({}) == []
    assert describe_phoneme("A") == "Closed mouth (M, B, P)"
    assert describe_phoneme("Z") == "Unknown"


def test_pass_through_without_service_or_rhubarb(clip, no_media_tools):
    video, audio, out, cues = clip
    engine = LipSyncEngine(httpx.Client(transport=httpx.MockTransport(_fail_on_request)), url="", api_key="")
    result = engine.sync(video, audio, out, cues)
    assert result.method == "passthrough"
    assert result.degraded
    assert Path(out).read_bytes() == b"original-video"


def test_remote_service(clip, no_media_tools):
    video, audio, out, cues = clip
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = request.content
        return httpx.Response(200, content=b"synced-video", headers={"content-type": "video/mp4"})

    engine = LipSyncEngine(httpx.Client(transport=httpx.MockTransport(handler)),
                           url="http://lipsync.local/sync", api_key="ls-key")
    result = engine.sync(video, audio, out, cues)
    assert result.method == "service"
    assert not result.degraded
    assert Path(out).read_bytes() == b"synced-video"
    assert seen["auth"] == "Bearer ls-key"
    assert b'name="video"' in seen["body"] and b'name="audio"' in seen["body"]


def test_rhubarb_cues_when_service_fails(clip, monkeypatch):
    video, audio, out, cues = clip

    def fake_run(cmd, *, timeout=None):
        assert cmd[1:3] == ["-f", "json"]
        Path(cmd[cmd.index("-o") + 1]).write_text(json.dumps({"mouthCues": [{"start": 0, "end": 1, "value": "X"}]}))
        return ""

    monkeypatch.setattr(media, "run", fake_run)
    engine = LipSyncEngine(httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(502))),
                           url="http://lipsync.local/sync", api_key=None)
    result = engine.sync(video, audio, out, cues)
    assert result.method == "rhubarb"
    assert result.data_path == cues
    assert Path(out).read_bytes() == b"original-video"


def test_no_video_at_all_is_fatal(tmp_path, no_media_tools):
    engine = LipSyncEngine(url="", api_key="")
    with pytest.raises(FatalStageError):
        engine.sync(str(tmp_path / "missing.mp4"), str(tmp_path / "a.wav"), str(tmp_path / "o.mp4"), str(tmp_path / "c.json"))
