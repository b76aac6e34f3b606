from pathlib import Path

from tnt_audio.encoding import (
    EncodeSettings,
    codec_args,
    needs_dither,
    output_path_for,
    uses_mp4_metadata,
)
from tnt_audio.options import OutputFormat, PcmBitDepth


def test_pcm_codec_args_use_requested_rate_and_depth():
    settings = EncodeSettings(sample_rate_hz=44_100, bit_depth=PcmBitDepth.FLOAT32)

    assert codec_args(settings, is_speech=False) == ["-ar", "44100", "-acodec", "pcm_f32le"]


def test_opus_codec_args_for_speech():
    settings = EncodeSettings(output_format=OutputFormat.OPUS, bitrate_kbps=64, compression_level=3)

    assert codec_args(settings, is_speech=True) == [
        "-ar",
        "48000",
        "-c:a",
        "libopus",
        "-b:a",
        "64000",
        "-application",
        "voip",
        "-compression_level",
        "7",
    ]


def test_lossy_bitrate_at_or_below_floor_falls_back_to_128k():
    settings = EncodeSettings(output_format=OutputFormat.MP3, bitrate_kbps=12)

    assert codec_args(settings, is_speech=False) == ["-ar", "48000", "-c:a", "libmp3lame", "-b:a", "128000"]


def test_flac_compression_level_is_rescaled():
    assert codec_args(EncodeSettings(output_format=OutputFormat.FLAC, compression_level=10), False)[-1] == "12"
    assert codec_args(EncodeSettings(output_format=OutputFormat.FLAC, compression_level=5), False)[-1] == "6"


def test_stream_copy_keeps_input_container():
    settings = EncodeSettings(no_transcode=True)

    assert codec_args(settings, is_speech=False) == ["-c", "copy"]
    assert output_path_for(Path("in/show.mp3"), Path("out"), settings, False, True) == Path("out/show.tagged.mp3")
    assert not needs_dither(settings)


def test_only_16_bit_pcm_is_dithered():
    assert needs_dither(EncodeSettings(bit_depth=PcmBitDepth.INT16))
    assert not needs_dither(EncodeSettings(bit_depth=PcmBitDepth.INT24))
    assert not needs_dither(EncodeSettings(output_format=OutputFormat.FLAC))


def test_output_names_carry_loudness_markers():
    aac = EncodeSettings(output_format=OutputFormat.AAC)

    assert output_path_for(Path("a/x.wav"), Path("out"), EncodeSettings(), True, False) == Path("out/x.normalized.wav")
    assert output_path_for(Path("a/x.wav"), Path("out"), aac, False, True) == Path("out/x.tagged.m4a")
    assert output_path_for(Path("a/x.flac"), Path("out"), EncodeSettings(), False, False) == Path("out/x.wav")
    assert uses_mp4_metadata(aac, Path("a/x.wav"))


def test_output_path_mirrors_sub_folders_below_input_root():
    settings = EncodeSettings()

    mirrored = output_path_for(Path("root/a/b/x.wav"), Path("out"), settings, False, False, input_root=Path("root"))
    outside = output_path_for(Path("elsewhere/x.wav"), Path("out"), settings, False, False, input_root=Path("root"))

    assert mirrored == Path("out/a/b/x.wav")
    assert outside == Path("out/x.wav")


def test_output_tag_sits_between_stem_and_loudness_marker():
    aac = EncodeSettings(output_format=OutputFormat.AAC)

    assert output_path_for(Path("a/x.mp3"), Path("out"), aac, False, True, output_tag="_mp3") == Path(
        "out/x_mp3.tagged.m4a"
    )
