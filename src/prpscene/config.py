"""
Configuration
=============
Global defaults for loading scene data, with environment overrides.

Exports:
    DEFAULT_MAX_DEPTH (int): Deepest object nesting accepted by loaders.
    MAX_DEPTH_ENV (str): Environment variable overriding DEFAULT_MAX_DEPTH.
    FRAMES_PER_LEVEL (int): Interpreter frames one nesting level costs.
    RESERVED_FRAMES (int): Frames kept free for type decoding and callers.
"""
import logging
import os
import sys


logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH: int = 128
MAX_DEPTH_ENV: str = "PRPSCENE_MAX_DEPTH"

FRAMES_PER_LEVEL: int = 2
RESERVED_FRAMES: int = 2 * DEFAULT_MAX_DEPTH + 150


def depth_limit() -> int:
    """
    Deepest nesting the current recursion limit can hold.
    """
    return max((sys.getrecursionlimit() - RESERVED_FRAMES) // FRAMES_PER_LEVEL, 1)


def clamp_max_depth(value: int) -> int:
    """
    Lower a requested nesting depth to what the interpreter stack can hold.
    """
    limit = depth_limit()
    if value > limit:
        logger.warning(f"Max depth {value} exceeds the recursion limit, using {limit}")
        return limit
    return value


def get_max_depth() -> int:
    """
    Maximum nesting depth, from PRPSCENE_MAX_DEPTH when set to a positive integer.
    """
    text = os.environ.get(MAX_DEPTH_ENV)
    if text is None:
        return clamp_max_depth(DEFAULT_MAX_DEPTH)
    try:
        value = int(text)
    except ValueError:
        value = 0
    if value <= 0:
        logger.warning(f"Ignoring invalid {MAX_DEPTH_ENV}={text!r}, using {DEFAULT_MAX_DEPTH}")
        return clamp_max_depth(DEFAULT_MAX_DEPTH)
    return clamp_max_depth(value)
