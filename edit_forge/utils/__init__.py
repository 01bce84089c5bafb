"""RU: Вспомогательные модули: логирование, подпроцессы, таймкоды.

EN: Helper modules: logging, subprocesses, timecodes.
"""
