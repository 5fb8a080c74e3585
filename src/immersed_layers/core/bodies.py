# core/bodies.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .errors import DimensionMismatch


# -----------------------------
# Closed-curve sampling
# -----------------------------

def _signed_area(v: np.ndarray) -> float:
    x, y = v[:, 0], v[:, 1]
    return 0.5 * float(np.sum(x * np.roll(y, -1) - np.roll(x, -1) * y))


def _n_points(perimeter: float, spacing: float) -> int:
    return max(int(np.ceil(perimeter / float(spacing))), 3)


def _check_spacing(spacing: float) -> None:
    if not float(spacing) > 0.0:
        raise ValueError("spacing must be positive.")


def sample_polygon(
    vertices: np.ndarray, spacing: float
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Evenly spaced points (in arc length) on a closed polygon.

    Points sit at the middle of equal arc-length bins, so none lands exactly on a
    vertex; each point takes the outward normal of its segment.

    Returns
    -------
    xy : (n, 2), normals : (n, 2), ds : (n,)
    """
    _check_spacing(spacing)
    v = np.asarray(vertices, dtype=float)
    if v.ndim != 2 or v.shape[1] != 2 or v.shape[0] < 3:
        raise ValueError("vertices must have shape (m, 2) with m >= 3")
    if _signed_area(v) < 0.0:
        v = v[::-1]

    seg = np.roll(v, -1, axis=0) - v
    seglen = np.hypot(seg[:, 0], seg[:, 1])
    if np.any(seglen <= 0.0):
        raise ValueError("polygon has repeated consecutive vertices")

    perimeter = float(seglen.sum())
    n = _n_points(perimeter, spacing)
    s = (np.arange(n) + 0.5) * perimeter / n

    cum = np.concatenate([[0.0], np.cumsum(seglen)])
    k = np.clip(np.searchsorted(cum, s, side="right") - 1, 0, v.shape[0] - 1)
    frac = (s - cum[k]) / seglen[k]

    xy = v[k] + frac[:, None] * seg[k]
    normals = np.column_stack([seg[k, 1], -seg[k, 0]]) / seglen[k][:, None]
    ds = np.full(n, perimeter / n)
    return xy, normals, ds


# -----------------------------
# Bodies
# -----------------------------

class Body:
    """
    Closed immersed surface placed by `center` and `angle`.

    Subclasses describe the reference shape (centered at the origin, angle 0)
    through `_reference_points`.
    """

    center: Tuple[float, float]
    angle: float

    def _reference_points(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        raise NotImplementedError

    def points(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Placed points (n, 2), outward unit normals (n, 2) and arc lengths (n,)."""
        xy, normals, ds = self._reference_points()
        c, s = np.cos(float(self.angle)), np.sin(float(self.angle))
        rot = np.array([[c, -s], [s, c]])
        xy = xy @ rot.T + np.asarray(self.center, dtype=float)
        normals = normals @ rot.T
        return xy, normals, ds


@dataclass(frozen=True)
class Circle(Body):
    radius: float
    spacing: float
    center: Tuple[float, float] = (0.0, 0.0)
    angle: float = 0.0

    def __post_init__(self) -> None:
        if not float(self.radius) > 0.0:
            raise ValueError("radius must be positive.")
        _check_spacing(self.spacing)

    def _reference_points(self):
        r = float(self.radius)
        n = _n_points(2.0 * np.pi * r, self.spacing)
        theta = 2.0 * np.pi * np.arange(n) / n
        normals = np.column_stack([np.cos(theta), np.sin(theta)])
        return r * normals, normals, np.full(n, 2.0 * np.pi * r / n)


@dataclass(frozen=True)
class Ellipse(Body):
    """Ellipse with semi-axes a (along x) and b (along y)."""
    a: float
    b: float
    spacing: float
    center: Tuple[float, float] = (0.0, 0.0)
    angle: float = 0.0

    def __post_init__(self) -> None:
        if not (float(self.a) > 0.0 and float(self.b) > 0.0):
            raise ValueError("semi-axes must be positive.")
        _check_spacing(self.spacing)

    def _reference_points(self):
        a, b = float(self.a), float(self.b)

        # Arc length on a fine parametrization, then invert it at even spacing
        t_fine = np.linspace(0.0, 2.0 * np.pi, 4097)
        xf, yf = a * np.cos(t_fine), b * np.sin(t_fine)
        cum = np.concatenate([[0.0], np.cumsum(np.hypot(np.diff(xf), np.diff(yf)))])
        perimeter = float(cum[-1])

        n = _n_points(perimeter, self.spacing)
        t = np.interp(np.arange(n) * perimeter / n, cum, t_fine)

        xy = np.column_stack([a * np.cos(t), b * np.sin(t)])
        normals = np.column_stack([b * np.cos(t), a * np.sin(t)])
        normals /= np.hypot(normals[:, 0], normals[:, 1])[:, None]
        return xy, normals, np.full(n, perimeter / n)


@dataclass(frozen=True)
class Rectangle(Body):
    """Rectangle with half-lengths a (along x) and b (along y)."""
    a: float
    b: float
    spacing: float
    center: Tuple[float, float] = (0.0, 0.0)
    angle: float = 0.0

    def __post_init__(self) -> None:
        if not (float(self.a) > 0.0 and float(self.b) > 0.0):
            raise ValueError("half-lengths must be positive.")
        _check_spacing(self.spacing)

    def _reference_points(self):
        a, b = float(self.a), float(self.b)
        vertices = np.array([[-a, -b], [a, -b], [a, b], [-a, b]])
        return sample_polygon(vertices, self.spacing)


@dataclass(frozen=True)
class Square(Body):
    """Square with half side length a."""
    a: float
    spacing: float
    center: Tuple[float, float] = (0.0, 0.0)
    angle: float = 0.0

    def __post_init__(self) -> None:
        if not float(self.a) > 0.0:
            raise ValueError("half side length must be positive.")
        _check_spacing(self.spacing)

    def _reference_points(self):
        a = float(self.a)
        vertices = np.array([[-a, -a], [a, -a], [a, a], [-a, a]])
        return sample_polygon(vertices, self.spacing)


@dataclass(frozen=True)
class Polygon(Body):
    """Closed polygon; vertex order may be either orientation."""
    vertices: Tuple[Tuple[float, float], ...]
    spacing: float
    center: Tuple[float, float] = (0.0, 0.0)
    angle: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "vertices", tuple((float(x), float(y)) for x, y in self.vertices)
        )
        if len(self.vertices) < 3:
            raise ValueError("a polygon needs at least 3 vertices.")
        _check_spacing(self.spacing)

    def _reference_points(self):
        return sample_polygon(np.array(self.vertices), self.spacing)


# -----------------------------
# Collections and placement
# -----------------------------

class BodyList(list):
    """Ordered collection of bodies; body i owns the i-th block of surface points."""

    def __init__(self, bodies: Iterable[Body] = ()) -> None:
        super().__init__(bodies)

    def surface(self) -> "SurfacePoints":
        return SurfacePoints.from_bodies(self)


@dataclass(frozen=True)
class RigidTransform:
    """Places a body's reference shape at `translation`, rotated by `angle` (radians)."""
    translation: Tuple[float, float] = (0.0, 0.0)
    angle: float = 0.0

    def __call__(self, body: Body) -> Body:
        tx, ty = self.translation
        return replace(body, center=(float(tx), float(ty)), angle=float(self.angle))


class RigidTransformList(list):
    """One RigidTransform per body of a BodyList."""

    def __init__(self, transforms: Iterable[RigidTransform] = ()) -> None:
        super().__init__(transforms)

    def __call__(self, bodies: Sequence[Body]) -> BodyList:
        if len(bodies) != len(self):
            raise ValueError(
                f"RigidTransformList has {len(self)} transforms for {len(bodies)} bodies"
            )
        return BodyList(t(b) for t, b in zip(self, bodies))


# -----------------------------
# Surface points
# -----------------------------

def _readonly(a: np.ndarray) -> np.ndarray:
    a = np.ascontiguousarray(a, dtype=float)
    a.setflags(write=False)
    return a


@dataclass(frozen=True, eq=False)
class SurfacePoints:
    """
    Immutable snapshot of all surface points, in canonical order (body 0 first).

    offsets[i]:offsets[i+1] is the block of body i.
    """
    x: np.ndarray
    y: np.ndarray
    nx: np.ndarray
    ny: np.ndarray
    ds: np.ndarray
    offsets: Tuple[int, ...] = field(default=(0,))

    def __post_init__(self) -> None:
        n = np.asarray(self.x).size
        for name in ("x", "y", "nx", "ny", "ds"):
            arr = np.asarray(getattr(self, name), dtype=float).reshape(-1)
            if arr.size != n:
                raise ValueError(f"SurfacePoints.{name} has size {arr.size}, expected {n}")
            object.__setattr__(self, name, _readonly(arr))
        offsets = tuple(int(o) for o in self.offsets)
        if offsets[0] != 0 or offsets[-1] != n or any(np.diff(offsets) < 0):
            raise ValueError(f"offsets {offsets} inconsistent with {n} points")
        object.__setattr__(self, "offsets", offsets)

    @classmethod
    def from_bodies(cls, bodies: Sequence[Body]) -> "SurfacePoints":
        xs: List[np.ndarray] = []
        ns: List[np.ndarray] = []
        dss: List[np.ndarray] = []
        offsets = [0]
        for body in bodies:
            xy, normals, ds = body.points()
            xs.append(xy)
            ns.append(normals)
            dss.append(ds)
            offsets.append(offsets[-1] + ds.size)

        if not dss:
            empty = np.zeros(0)
            return cls(empty, empty, empty, empty, empty, offsets=(0,))

        xy = np.concatenate(xs, axis=0)
        normals = np.concatenate(ns, axis=0)
        return cls(
            x=xy[:, 0],
            y=xy[:, 1],
            nx=normals[:, 0],
            ny=normals[:, 1],
            ds=np.concatenate(dss),
            offsets=tuple(offsets),
        )

    @property
    def n_points(self) -> int:
        return int(self.ds.size)

    @property
    def n_bodies(self) -> int:
        return len(self.offsets) - 1

    def __len__(self) -> int:
        return self.n_points

    @property
    def normals(self) -> np.ndarray:
        return np.column_stack([self.nx, self.ny])

    @property
    def points(self) -> np.ndarray:
        return np.column_stack([self.x, self.y])

    def body_slice(self, body: int) -> slice:
        if not (0 <= int(body) < self.n_bodies):
            raise IndexError(f"body {body} out of range for {self.n_bodies} bodies")
        return slice(self.offsets[body], self.offsets[body + 1])

    def zeros(self) -> np.ndarray:
        return np.zeros(self.n_points)

    def _check(self, q: np.ndarray, name: str) -> np.ndarray:
        q = np.asarray(q)
        if q.ndim not in (1, 2) or q.shape[0] != self.n_points:
            raise DimensionMismatch(
                f"{name} has shape {q.shape}, expected ({self.n_points},) or ({self.n_points}, k)"
            )
        return q

    def copyto(self, dest: np.ndarray, src: np.ndarray, body: int) -> np.ndarray:
        """
        Copy the block of `body` from `src` into `dest` (in place).

        `src` may be a full surface field or just the body's block.
        """
        sl = self.body_slice(body)
        self._check(dest, "dest")
        src = np.asarray(src)
        if src.ndim not in (1, 2):
            raise DimensionMismatch(f"src has shape {src.shape}, expected a surface field or block")
        if src.shape[0] == self.n_points:
            dest[sl] = src[sl]
        elif src.shape[0] == sl.stop - sl.start:
            dest[sl] = src
        else:
            raise DimensionMismatch(
                f"src has {src.shape[0]} entries; expected {self.n_points} or {sl.stop - sl.start}"
            )
        return dest

    def integrate(self, q: np.ndarray, body: Optional[int] = None):
        """
        Arc-length quadrature sum(q * ds), over one body or all of them.

        q may be (N,) (returns a float) or (N, k) (returns a (k,) array).
        """
        q = self._check(q, "q")
        sl = slice(None) if body is None else self.body_slice(body)
        w = self.ds[sl]
        if q.ndim == 1:
            return float(np.sum(q[sl] * w))
        return np.sum(q[sl] * w[:, None], axis=0)
