# dealership/utils.py
"""Shared utilities: logging, retry decorator and slug helpers."""
import os
import logging
import re
import secrets
import string
import time
from functools import wraps
from dotenv import load_dotenv

load_dotenv()

def get_logger(name=__name__):
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        level=getattr(logging, level, logging.INFO)
    )
    return logging.getLogger(name)

logger = get_logger("dealership")

def retry(exceptions, tries=3, delay=1, backoff=2, logger=logger):
    def deco_retry(f):
        @wraps(f)
        def f_retry(*args, **kwargs):
            mtries, mdelay = tries, delay
            while mtries > 1:
                try:
                    return f(*args, **kwargs)
                except exceptions as e:
                    logger.warning("Retryable error in %s: %s, retrying in %s sec", f.__name__, e, mdelay)
                    time.sleep(mdelay)
                    mtries -= 1
                    mdelay *= backoff
            return f(*args, **kwargs)
        return f_retry
    return deco_retry


_PL_CHARS = str.maketrans({"ą": "a", "ć": "c", "ę": "e", "ł": "l", "ń": "n", "ó": "o", "ś": "s", "ź": "z", "ż": "z"})
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits

def slugify(text: str) -> str:
    text = text.lower().translate(_PL_CHARS)
    text = re.sub(r"[^a-z0-9]+", "-", text)
    return text.strip("-")

def new_slug_suffix(length: int = 6) -> str:
    return "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(length))

def make_vehicle_slug(vehicle_type: str, make: str, model: str, year: int, suffix: str) -> str:
    # listing URLs are in Polish: /nowe/... and /uzywane/...
    prefix = "nowe" if vehicle_type == "NEW" else "uzywane"
    return f"{prefix}-{slugify(make)}-{slugify(model)}-{year}-{suffix[-6:]}"
