# pixelate_map/colour_convert.py
"""
Colour conversions and metrics (sRGB, D65).

Exports:
  srgb_to_linear(c)
  rgb_to_xyz(rgb)
  xyz_to_lab(xyz)
  rgb_to_lab(rgb)
  lab_to_lch(lab)
  hue_angle(a, b)
  hue_difference(h1, h2)
  delta_hue(a1, b1, a2, b2)
  delta_e2000_pair(lab1, lab2)
  delta_e2000_matrix(src_lab, pal_lab)

All array functions take channel values in 0..255 (any numeric dtype), accept
scalars or arrays of shape (..., 3), and compute in float64 so mapping
decisions do not depend on the input dtype.
"""
from __future__ import annotations

import math
from typing import Sequence, Tuple

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .constants import D65_WHITE, LAB_DELTA, SRGB_LINEAR_CUTOFF, SRGB_TO_XYZ
from .core_types import Lab

_M = np.array(SRGB_TO_XYZ, dtype=np.float64)
_WHITE = np.array(D65_WHITE, dtype=np.float64)
_POW25_7 = 25.0**7


# sRGB to linear


def srgb_to_linear(c: ArrayLike) -> NDArray[np.float64]:
    """
    Convert sRGB channel values (0..255) to linear light (0..1). Vectorised.
    """
    cs = np.asarray(c, dtype=np.float64) / 255.0
    return np.where(
        cs <= SRGB_LINEAR_CUTOFF, cs / 12.92, ((cs + 0.055) / 1.055) ** 2.4
    )


# sRGB to XYZ to Lab


def rgb_to_xyz(rgb: ArrayLike) -> NDArray[np.float64]:
    """sRGB [...,3] (0..255) to CIE XYZ [...,3] under D65."""
    linear = srgb_to_linear(rgb)
    r_lin = linear[..., 0]
    g_lin = linear[..., 1]
    b_lin = linear[..., 2]
    out = np.empty(linear.shape, dtype=np.float64)
    out[..., 0] = _M[0, 0] * r_lin + _M[0, 1] * g_lin + _M[0, 2] * b_lin
    out[..., 1] = _M[1, 0] * r_lin + _M[1, 1] * g_lin + _M[1, 2] * b_lin
    out[..., 2] = _M[2, 0] * r_lin + _M[2, 1] * g_lin + _M[2, 2] * b_lin
    return out


def _lab_f(t: NDArray[np.float64]) -> NDArray[np.float64]:
    return np.where(
        t > LAB_DELTA**3,
        np.cbrt(t),
        t / (3.0 * LAB_DELTA**2) + 4.0 / 29.0,
    )


def xyz_to_lab(xyz: ArrayLike) -> Lab:
    """CIE XYZ [...,3] to CIE Lab [...,3], normalised by the D65 white."""
    xyz_f = np.asarray(xyz, dtype=np.float64)
    fx = _lab_f(xyz_f[..., 0] / _WHITE[0])
    fy = _lab_f(xyz_f[..., 1] / _WHITE[1])
    fz = _lab_f(xyz_f[..., 2] / _WHITE[2])
    out = np.empty(xyz_f.shape, dtype=np.float64)
    out[..., 0] = 116.0 * fy - 16.0
    out[..., 1] = 500.0 * (fx - fy)
    out[..., 2] = 200.0 * (fy - fz)
    return out


def rgb_to_lab(rgb: ArrayLike) -> Lab:
    """
    sRGB to CIE Lab (D65).
    Accepts channel values in 0..255. Preserves shape (...,3). Returns float64.
    """
    return xyz_to_lab(rgb_to_xyz(rgb))


# Lab to LCh


def lab_to_lch(lab: ArrayLike) -> Tuple[NDArray[np.float64], ...]:
    """
    Lab[...,3] to (L, C, h) planes. h is the atan2 hue angle in radians.
    """
    lab_f = np.asarray(lab, dtype=np.float64)
    a = lab_f[..., 1]
    b = lab_f[..., 2]
    return lab_f[..., 0], np.hypot(a, b), np.arctan2(b, a)


# Hue helpers


def hue_angle(a: ArrayLike, b: ArrayLike) -> NDArray[np.float64]:
    """Hue angle atan2(b, a) in radians, range [-pi, pi]."""
    return np.arctan2(np.asarray(b, dtype=np.float64), np.asarray(a, dtype=np.float64))


def hue_difference(h1: ArrayLike, h2: ArrayLike) -> NDArray[np.float64]:
    """Absolute difference between two hue angles (radians), wrapped into [0, pi]."""
    d = np.abs(np.asarray(h1, dtype=np.float64) - np.asarray(h2, dtype=np.float64))
    return np.where(d > math.pi, 2.0 * math.pi - d, d)


def delta_hue(
    a1: ArrayLike, b1: ArrayLike, a2: ArrayLike, b2: ArrayLike
) -> NDArray[np.float64]:
    """Hue difference between two a*/b* points, in radians [0, pi]."""
    return hue_difference(hue_angle(a1, b1), hue_angle(a2, b2))


# CIEDE2000


def delta_e2000_pair(
    lab1: Sequence[float] | NDArray[np.floating],
    lab2: Sequence[float] | NDArray[np.floating],
) -> float:
    """
    CIEDE2000 distance between two Lab colours (kL = kC = kH = 1).

    Scalar reference implementation: the mapper uses delta_e2000_matrix, and
    this one-pair form is what the matrix is checked against.
    """
    L1, a1, b1 = float(lab1[0]), float(lab1[1]), float(lab1[2])
    L2, a2, b2 = float(lab2[0]), float(lab2[1]), float(lab2[2])

    C1 = math.hypot(a1, b1)
    C2 = math.hypot(a2, b2)
    C_bar = 0.5 * (C1 + C2)
    G = 0.5 * (1.0 - math.sqrt((C_bar**7) / (C_bar**7 + _POW25_7)))

    a1p = (1.0 + G) * a1
    a2p = (1.0 + G) * a2
    C1p = math.hypot(a1p, b1)
    C2p = math.hypot(a2p, b2)

    def _hue(a_val: float, b_val: float) -> float:
        if a_val == 0.0 and b_val == 0.0:
            return 0.0
        ang = math.degrees(math.atan2(b_val, a_val))
        return ang + 360.0 if ang < 0.0 else ang

    h1p = _hue(a1p, b1)
    h2p = _hue(a2p, b2)

    dLp = L2 - L1
    dCp = C2p - C1p

    dhp = h2p - h1p
    if C1p * C2p == 0.0:
        dhp = 0.0
    elif dhp > 180.0:
        dhp -= 360.0
    elif dhp < -180.0:
        dhp += 360.0

    dHp = 2.0 * math.sqrt(C1p * C2p) * math.sin(math.radians(dhp / 2.0))

    L_bar = 0.5 * (L1 + L2)
    C_bar_p = 0.5 * (C1p + C2p)

    if C1p * C2p == 0.0:
        h_bar_p = h1p + h2p
    else:
        h_sum = h1p + h2p
        h_diff = abs(h1p - h2p)
        if h_diff <= 180.0:
            h_bar_p = 0.5 * h_sum
        elif h_sum < 360.0:
            h_bar_p = 0.5 * (h_sum + 360.0)
        else:
            h_bar_p = 0.5 * (h_sum - 360.0)

    T = (
        1.0
        - 0.17 * math.cos(math.radians(h_bar_p - 30.0))
        + 0.24 * math.cos(math.radians(2.0 * h_bar_p))
        + 0.32 * math.cos(math.radians(3.0 * h_bar_p + 6.0))
        - 0.20 * math.cos(math.radians(4.0 * h_bar_p - 63.0))
    )

    d_theta = 30.0 * math.exp(-(((h_bar_p - 275.0) / 25.0) ** 2.0))
    R_c = 2.0 * math.sqrt((C_bar_p**7) / (C_bar_p**7 + _POW25_7))

    S_l = 1.0 + (0.015 * ((L_bar - 50.0) ** 2.0)) / math.sqrt(
        20.0 + ((L_bar - 50.0) ** 2.0)
    )
    S_c = 1.0 + 0.045 * C_bar_p
    S_h = 1.0 + 0.015 * C_bar_p * T
    R_t = -math.sin(math.radians(2.0 * d_theta)) * R_c

    kL = kC = kH = 1.0
    dE2 = (
        (dLp / (kL * S_l)) ** 2
        + (dCp / (kC * S_c)) ** 2
        + (dHp / (kH * S_h)) ** 2
        + R_t * (dCp / (kC * S_c)) * (dHp / (kH * S_h))
    )
    return float(math.sqrt(max(0.0, dE2)))


def delta_e2000_matrix(src_lab: ArrayLike, pal_lab: ArrayLike) -> NDArray[np.float64]:
    """
    CIEDE2000 for many source colours against many palette colours.
    Same formula as delta_e2000_pair, broadcast over a grid.

    Args:
      src_lab: Lab [N,3]
      pal_lab: Lab [P,3]
    Returns:
      float64 array [N,P]
    """
    s = np.asarray(src_lab, dtype=np.float64).reshape(-1, 3)
    p = np.asarray(pal_lab, dtype=np.float64).reshape(-1, 3)
    L1, a1, b1 = s[:, 0:1], s[:, 1:2], s[:, 2:3]
    L2, a2, b2 = p[None, :, 0], p[None, :, 1], p[None, :, 2]

    C1 = np.hypot(a1, b1)
    C2 = np.hypot(a2, b2)
    C_bar7 = (0.5 * (C1 + C2)) ** 7
    G = 0.5 * (1.0 - np.sqrt(C_bar7 / (C_bar7 + _POW25_7)))

    a1p = (1.0 + G) * a1
    a2p = (1.0 + G) * a2
    C1p = np.hypot(a1p, b1)
    C2p = np.hypot(a2p, b2)

    # + 0.0 folds -0.0 so a grey point gets hue 0, as in the scalar path.
    h1p = np.degrees(np.arctan2(b1 + 0.0, a1p + 0.0))
    h1p = np.where(h1p < 0.0, h1p + 360.0, h1p)
    h2p = np.degrees(np.arctan2(b2 + 0.0, a2p + 0.0))
    h2p = np.where(h2p < 0.0, h2p + 360.0, h2p)

    dLp = L2 - L1
    dCp = C2p - C1p

    c_prod = C1p * C2p
    achromatic = c_prod == 0.0

    dhp = h2p - h1p
    dhp = np.where(dhp > 180.0, dhp - 360.0, np.where(dhp < -180.0, dhp + 360.0, dhp))
    dhp = np.where(achromatic, 0.0, dhp)
    dHp = 2.0 * np.sqrt(c_prod) * np.sin(np.radians(dhp / 2.0))

    L_bar = 0.5 * (L1 + L2)
    C_bar_p = 0.5 * (C1p + C2p)

    h_sum = h1p + h2p
    h_diff = np.abs(h1p - h2p)
    h_bar_p = np.where(
        achromatic,
        h_sum,
        np.where(
            h_diff <= 180.0,
            0.5 * h_sum,
            np.where(h_sum < 360.0, 0.5 * (h_sum + 360.0), 0.5 * (h_sum - 360.0)),
        ),
    )

    T = (
        1.0
        - 0.17 * np.cos(np.radians(h_bar_p - 30.0))
        + 0.24 * np.cos(np.radians(2.0 * h_bar_p))
        + 0.32 * np.cos(np.radians(3.0 * h_bar_p + 6.0))
        - 0.20 * np.cos(np.radians(4.0 * h_bar_p - 63.0))
    )

    d_theta = 30.0 * np.exp(-(((h_bar_p - 275.0) / 25.0) ** 2.0))
    C_bar_p7 = C_bar_p**7
    R_c = 2.0 * np.sqrt(C_bar_p7 / (C_bar_p7 + _POW25_7))

    L_off2 = (L_bar - 50.0) ** 2.0
    S_l = 1.0 + (0.015 * L_off2) / np.sqrt(20.0 + L_off2)
    S_c = 1.0 + 0.045 * C_bar_p
    S_h = 1.0 + 0.015 * C_bar_p * T
    R_t = -np.sin(np.radians(2.0 * d_theta)) * R_c

    l_term = dLp / S_l
    c_term = dCp / S_c
    h_term = dHp / S_h
    dE2 = l_term**2 + c_term**2 + h_term**2 + R_t * c_term * h_term
    return np.sqrt(np.maximum(dE2, 0.0))


__all__ = [
    "srgb_to_linear",
    "rgb_to_xyz",
    "xyz_to_lab",
    "rgb_to_lab",
    "lab_to_lch",
    "hue_angle",
    "hue_difference",
    "delta_hue",
    "delta_e2000_pair",
    "delta_e2000_matrix",
]
