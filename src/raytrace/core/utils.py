from __future__ import annotations

import logging


def get_logger(name: str = "raytrace") -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        fmt = logging.Formatter("[%(levelname)s] %(message)s")
        handler.setFormatter(fmt)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger


def to_vec_tuple(values, name: str = "value") -> tuple[float, float, float]:
    """Coerce a length-3 sequence into a float triple, raising ValueError otherwise."""
    items = tuple(float(v) for v in values)
    if len(items) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(items)}")
    return items
