"""Final-encode arguments and output naming."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from tnt_audio.audio_contract import LOSSY_SAMPLE_RATE_HZ
from tnt_audio.options import OutputFormat, PcmBitDepth

MIN_BITRATE_KBPS = 12
DEFAULT_BITRATE_KBPS = 128
PCM_DITHER_FILTER = "aresample=resampler=soxr:dither_method=triangular"


@dataclass(frozen=True, slots=True)
class FormatProfile:
    """Encoder name and container extension for one output format."""

    codec: str
    extension: str
    uses_bitrate: bool
    uses_compression_level: bool


FORMAT_PROFILES: dict[OutputFormat, FormatProfile] = {
    OutputFormat.OPUS: FormatProfile("libopus", ".opus", uses_bitrate=True, uses_compression_level=True),
    OutputFormat.AAC: FormatProfile("libfdk_aac", ".m4a", uses_bitrate=True, uses_compression_level=False),
    OutputFormat.MP3: FormatProfile("libmp3lame", ".mp3", uses_bitrate=True, uses_compression_level=False),
    OutputFormat.PCM: FormatProfile("pcm", ".wav", uses_bitrate=False, uses_compression_level=False),
    OutputFormat.FLAC: FormatProfile("flac", ".flac", uses_bitrate=False, uses_compression_level=True),
}

PCM_CODECS: dict[PcmBitDepth, str] = {
    PcmBitDepth.INT16: "pcm_s16le",
    PcmBitDepth.INT24: "pcm_s24le",
    PcmBitDepth.FLOAT32: "pcm_f32le",
    PcmBitDepth.FLOAT64: "pcm_f64le",
}


@dataclass(frozen=True, slots=True)
class EncodeSettings:
    """How the final render is encoded."""

    output_format: OutputFormat = OutputFormat.PCM
    bitrate_kbps: int = 256
    sample_rate_hz: int = 48_000
    bit_depth: PcmBitDepth = PcmBitDepth.INT24
    compression_level: int = 5
    no_transcode: bool = False

    @property
    def profile(self) -> FormatProfile:
        return FORMAT_PROFILES[self.output_format]


def effective_bitrate_bps(bitrate_kbps: int) -> int:
    if bitrate_kbps <= MIN_BITRATE_KBPS:
        bitrate_kbps = DEFAULT_BITRATE_KBPS
    return bitrate_kbps * 1000


def compression_level_arg(settings: EncodeSettings) -> int | None:
    """Map the 0-10 compression preference onto the encoder's own scale."""

    level = max(0, min(10, settings.compression_level))
    if settings.output_format is OutputFormat.OPUS:
        return 10 - level
    if settings.output_format is OutputFormat.FLAC:
        return round(level * 12 / 10)
    return None


def codec_args(settings: EncodeSettings, is_speech: bool) -> list[str]:
    """Return the codec section of the final-encode command line."""

    if settings.no_transcode:
        return ["-c", "copy"]

    profile = settings.profile
    if settings.output_format is OutputFormat.PCM:
        args = ["-ar", str(settings.sample_rate_hz), "-acodec", PCM_CODECS[settings.bit_depth]]
    else:
        args = ["-ar", str(LOSSY_SAMPLE_RATE_HZ), "-c:a", profile.codec]

    if profile.uses_bitrate:
        args += ["-b:a", str(effective_bitrate_bps(settings.bitrate_kbps))]
    if settings.output_format is OutputFormat.OPUS:
        args += ["-application", "voip" if is_speech else "audio"]
    level = compression_level_arg(settings)
    if level is not None:
        args += ["-compression_level", str(level)]
    return args


def needs_dither(settings: EncodeSettings) -> bool:
    return (
        not settings.no_transcode
        and settings.output_format is OutputFormat.PCM
        and settings.bit_depth is PcmBitDepth.INT16
    )


def output_extension(settings: EncodeSettings, input_path: Path) -> str:
    if settings.no_transcode:
        return input_path.suffix
    return settings.profile.extension


def uses_mp4_metadata(settings: EncodeSettings, input_path: Path) -> bool:
    return output_extension(settings, input_path).lower() in {".m4a", ".mp4", ".aac"}


def output_path_for(
    input_path: Path,
    output_dir: Path,
    settings: EncodeSettings,
    normalized: bool,
    tagged: bool,
    input_root: Path | None = None,
    output_tag: str = "",
) -> Path:
    """Return the destination path, mirroring sub-folders below ``input_root``.

    ``output_tag`` is appended to the stem to keep batch outputs apart.
    """

    destination_dir = output_dir
    if input_root is not None:
        try:
            relative = input_path.parent.relative_to(input_root)
        except ValueError:
            relative = Path()
        destination_dir = output_dir / relative

    if normalized:
        marker = ".normalized"
    elif tagged:
        marker = ".tagged"
    else:
        marker = ""
    return destination_dir / f"{input_path.stem}{output_tag}{marker}{output_extension(settings, input_path)}"
