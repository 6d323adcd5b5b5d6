"""Clip-to-video render core: filter compilation, ffmpeg invocation, job lifecycle."""
