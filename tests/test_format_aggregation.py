from __future__ import annotations

import pytest

from aggregator.format_ranker import finalize_formats, select_best
from aggregator.format_reconciler import FormatSource, is_resolvable, reconcile, response_records
from core import FormatRecord, PlayerResponse
from processing.descrambler import PassthroughDescrambler, unpack_cipher
from processing.format_meta import annotate, compare_formats, estimate_audio_bitrate
from utils.exceptions import NoPlayableFormats

from fakes import audio_only, muxed, player_response, video_only


def _record(**values) -> FormatRecord:
    return FormatRecord.model_validate(values)


def test_response_records_key_by_itag_then_url() -> None:
    payload = player_response(
        formats=[muxed(18, "https://a/18")],
        adaptive_formats=[
            {"url": "https://a/no-itag", "mimeType": "video/mp4"},
            {"mimeType": "video/mp4"},
            {"itag": "not-a-number-or-anything", "url": "https://a/odd"},
        ],
    )
    records = response_records(PlayerResponse.from_payload(payload, "WEB"))
    assert set(records) == {18, "https://a/no-itag", "https://a/odd"}


def test_later_source_replaces_whole_record() -> None:
    first = FormatSource("WEB", {18: _record(**muxed(18, "https://web/18", contentLength="100"))})
    second = FormatSource("IOS", {18: _record(itag=18, url="https://ios/18", mimeType="video/mp4")})

    merged = reconcile([first, second])

    assert merged[18].url == "https://ios/18"
    assert merged[18].content_length is None
    assert merged[18].quality_label is None


def test_reconcile_is_idempotent_per_source() -> None:
    source = FormatSource("WEB", {
        18: _record(**muxed(18, "https://web/18")),
        140: _record(**audio_only(140, "https://web/140")),
    })
    once = reconcile([source])
    twice = reconcile([source, source])
    assert once == twice


def test_reconcile_drops_records_that_cannot_become_playable() -> None:
    source = FormatSource("WEB", {
        18: _record(**muxed(18, "https://web/18")),
        251: _record(itag=251, mimeType='audio/webm; codecs="opus"', signatureCipher="s=abc&sp=sig&url=https%3A%2F%2Fx%2F251"),
        999: _record(itag=999, url="https://web/999"),
        "https://hls/variant": _record(url="https://hls/variant"),
    })
    merged = reconcile([source])
    assert set(merged) == {18, 251}
    assert not is_resolvable(_record(itag=1, mimeType="video/mp4"))


@pytest.mark.asyncio
async def test_passthrough_descrambler_records_scrambled_reference() -> None:
    record = _record(itag=251, mimeType='audio/webm; codecs="opus"', signatureCipher="s=abc&sp=sig&url=https%3A%2F%2Fx%2F251")
    assert unpack_cipher(record) == {"s": "abc", "sp": "sig", "url": "https://x/251"}

    resolved = await PassthroughDescrambler().resolve({251: record}, "https://player/base.js")
    assert resolved[251].scrambled_ref == "https://x/251"
    assert resolved[251].url is None


def _flags(has_video: bool, has_audio: bool, itag: int) -> FormatRecord:
    return _record(itag=itag, url=f"https://x/{itag}", mimeType="video/mp4", has_video=has_video, has_audio=has_audio)


@pytest.mark.parametrize(
    "order, expected",
    [
        ([(False, True), (True, False), (True, True)], 3),
        ([(True, True), (True, False), (False, True)], 1),
        ([(False, True), (True, False)], 2),
        ([(False, True), (False, True)], 1),
        ([(False, False), (False, False)], 1),
    ],
)
def test_select_best_precedence(order, expected) -> None:
    formats = [_flags(video, audio, index + 1) for index, (video, audio) in enumerate(order)]
    assert select_best(formats).itag == expected


def test_select_best_of_nothing_is_none() -> None:
    assert select_best([]) is None


def test_finalize_sorts_enriches_and_picks_best() -> None:
    records = {
        140: _record(**audio_only(140, "https://x/140")),
        137: _record(**video_only(137, "https://x/137")),
        18: _record(**muxed(18, "https://x/18")),
        251: _record(itag=251, mimeType='audio/webm; codecs="opus"'),
    }

    ranked = finalize_formats(records)

    assert [f.itag for f in ranked.formats] == [18, 137, 140]
    assert ranked.best.itag == 18
    assert ranked.best.has_video and ranked.best.has_audio
    audio = ranked.formats[-1]
    assert audio.has_audio and not audio.has_video
    assert audio.audio_codec == "mp4a.40.2"
    assert audio.container == "mp4"


def test_finalize_marks_hls_by_mime_type() -> None:
    records = [_record(itag=95, url="https://cdn/variant.m3u8", mimeType="application/x-mpegURL")]
    ranked = finalize_formats(records)
    assert ranked.formats[0].is_hls


def test_finalize_estimates_missing_audio_bitrate() -> None:
    record = _record(itag=9001, url="https://x/9001", mimeType='audio/webm; codecs="opus"', audioQuality="AUDIO_QUALITY_MEDIUM")
    ranked = finalize_formats([record])
    assert ranked.best.audio_bitrate == 128


def test_finalize_uses_injected_collaborators() -> None:
    seen = []

    def _annotate(record: FormatRecord) -> FormatRecord:
        seen.append(record.itag)
        record.has_video = True
        return record

    def _by_itag(a: FormatRecord, b: FormatRecord) -> int:
        return a.itag - b.itag

    records = [_record(itag=n, url=f"https://x/{n}", mimeType="video/mp4") for n in (30, 10, 20)]
    ranked = finalize_formats(records, annotator=_annotate, compare=_by_itag)

    assert sorted(seen) == [10, 20, 30]
    assert [f.itag for f in ranked.formats] == [10, 20, 30]
    assert ranked.best.itag == 10


def test_finalize_without_playable_formats_raises() -> None:
    with pytest.raises(NoPlayableFormats):
        finalize_formats({})
    with pytest.raises(NoPlayableFormats) as excinfo:
        finalize_formats([_record(itag=1, mimeType="video/mp4")], video_id="dQw4w9WgXcQ")
    assert excinfo.value.video_id == "dQw4w9WgXcQ"


def test_annotate_flags_live_and_dash_urls() -> None:
    live = annotate(_record(itag=95, url="https://x/source/yt_live_broadcast/index", mimeType="video/ts"))
    dash = annotate(_record(itag=137, url="https://x/api/manifest/dash/id/1", mimeType='video/mp4; codecs="avc1"'))
    assert live.is_live
    assert dash.is_dash_mpd
    assert dash.quality_label == "1080p"


def test_estimate_audio_bitrate_falls_back_to_codec_then_rate() -> None:
    assert estimate_audio_bitrate(_record(audioQuality="AUDIO_QUALITY_HIGH")) == 256
    assert estimate_audio_bitrate(_record(audio_codec="opus")) == 160
    assert estimate_audio_bitrate(_record(audioSampleRate="44100")) == 128
    assert estimate_audio_bitrate(_record()) == 64


def test_compare_prefers_higher_resolution_then_codec() -> None:
    low = annotate(_record(**video_only(135, "https://x/135", label="480p")))
    high = annotate(_record(**video_only(137, "https://x/137", label="1080p")))
    assert compare_formats(high, low) < 0
    assert compare_formats(low, high) > 0
    assert compare_formats(high, high) == 0
