"""Finite element solver package.

This package contains the Taylor-Hood (P2 velocity / P1 pressure) solver with
a semi-Lagrangian treatment of convection.
"""

__all__ = []
