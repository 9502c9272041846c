import logging

# 第三方套件降噪
_NOISY_LOGGERS = ("httpx", "httpcore", "openai")


def setup_logging(level: str = "INFO") -> None:
    """root logger 輸出到 console；handler 只加一次。"""
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())
    if not root_logger.handlers:
        fmt = logging.Formatter("%(asctime)s %(levelname)s %(message)s")

        ch = logging.StreamHandler()
        ch.setFormatter(fmt)
        root_logger.addHandler(ch)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
