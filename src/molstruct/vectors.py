"""
Small helpers for 3-component vectors.

Every function takes array-likes and returns a new numpy value, inputs are never modified.
"""

from typing import Sequence, Union

import numpy as np

VectorLike = Union[Sequence[float], np.ndarray]


def vec(p: VectorLike) -> np.ndarray:
  """Return a fresh float64 array of shape (3,) for ``p``."""
  return np.array(p, dtype=float).reshape(3)


def distance(a: VectorLike, b: VectorLike) -> float:
  """Euclidean distance between two points."""
  return float(np.linalg.norm(vec(b) - vec(a)))


def normalize(v: VectorLike) -> np.ndarray:
  """Return ``v`` scaled to unit length.

  A zero-length vector is returned unchanged (as zeros) instead of producing NaNs.
  """
  v = vec(v)
  length = np.linalg.norm(v)
  if length == 0.0:
    return v
  return v / length


def as_tuple(v: VectorLike) -> tuple:
  """Convert a vector to a plain ``(x, y, z)`` tuple of python floats."""
  x, y, z = vec(v)
  return (float(x), float(y), float(z))
