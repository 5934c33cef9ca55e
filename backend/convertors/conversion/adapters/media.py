"""Audio/video adapter (ffmpeg subprocess)."""
import logging
from pathlib import Path

from convertors.conversion.adapters.base import Adapter, ConversionOptions, extension_of, run_tool
from convertors.conversion.errors import UnsupportedOutputFormat
from convertors.conversion.formats import AUDIO_ONLY_EXTENSIONS, MEDIA_EXTENSIONS, VIDEO_CONTAINER_EXTENSIONS
from convertors.conversion.models import Capability

logger = logging.getLogger("converter.adapters.media")

# Picture track synthesised when an audio-only source goes into a video container
BLACK_VIDEO_SIZE = "320x240"
BLACK_VIDEO_RATE = 25

# target -> (video codec, audio codec, extra output args)
VIDEO_CODECS = {
    "mp4": ("libx264", "aac", ["-pix_fmt", "yuv420p", "-preset", "ultrafast"]),
    "mov": ("libx264", "aac", ["-pix_fmt", "yuv420p", "-preset", "ultrafast"]),
    "mkv": ("libx264", "aac", ["-preset", "ultrafast"]),
    "flv": ("libx264", "aac", ["-pix_fmt", "yuv420p", "-preset", "ultrafast"]),
    "avi": ("mpeg4", "libmp3lame", []),
    "webm": ("libvpx-vp9", "libopus", ["-deadline", "realtime", "-b:v", "0", "-crf", "35"]),
    "wmv": ("wmv2", "wmav2", []),
    "m4v": ("mpeg4", "aac", []),
    "3g2": ("mpeg4", "aac", ["-ar", "44100"]),
}
AUDIO_CODECS = {
    "mp3": ("libmp3lame", []),
    "wav": ("pcm_s16le", []),
    "aac": ("aac", []),
    "flac": ("flac", []),
    "ogg": ("libvorbis", []),
    "opus": ("libopus", []),
    "wma": ("wmav2", []),
    "aiff": ("pcm_s16be", []),
    # SMAF only carries Yamaha ADPCM at low rates
    "mmf": ("adpcm_yamaha", ["-ar", "8000", "-ac", "1"]),
}


class MediaAdapter(Adapter):
    name = "ffmpeg"
    capability = Capability.MEDIA

    def convert(self, input_path: Path, output_path: Path, options: ConversionOptions) -> None:
        cmd = self.build_command(input_path, output_path)
        run_tool(self.name, cmd, timeout=self.config.timeout)
        logger.info("Media conversion completed: %s", output_path.name)

    def build_command(self, input_path: Path, output_path: Path) -> list[str]:
        source = extension_of(input_path)
        target = extension_of(output_path)
        if target not in MEDIA_EXTENSIONS:
            raise UnsupportedOutputFormat(f"Unsupported media output format: {target}")
        cmd = [self.config.ffmpeg_path, "-y", "-hide_banner", "-nostdin"]
        if target in VIDEO_CONTAINER_EXTENSIONS:
            vcodec, acodec, extra = VIDEO_CODECS[target]
            if source in AUDIO_ONLY_EXTENSIONS:
                # Black picture track muxed against the original audio, cut to the audio length
                cmd += [
                    "-f", "lavfi",
                    "-i", f"color=c=black:s={BLACK_VIDEO_SIZE}:r={BLACK_VIDEO_RATE}",
                    "-i", str(input_path),
                    "-map", "0:v:0", "-map", "1:a:0",
                    "-shortest",
                ]
            else:
                cmd += ["-i", str(input_path)]
            cmd += ["-c:v", vcodec, "-c:a", acodec, *extra]
        else:
            acodec, extra = AUDIO_CODECS[target]
            cmd += ["-i", str(input_path), "-vn", "-c:a", acodec, *extra]
        cmd += ["-threads", "1", str(output_path)]
        return cmd
