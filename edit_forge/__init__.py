"""RU: Edit Forge: локальная правка и перекодирование коротких видео через FFmpeg.

EN: Edit Forge: local editing and transcoding of short videos through FFmpeg.
"""

__version__ = "0.1.0"
