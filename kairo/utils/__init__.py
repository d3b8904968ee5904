# Utilities: ffmpeg/ffprobe wrappers
