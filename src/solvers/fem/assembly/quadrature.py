"""Seven-point, degree-5 quadrature rule on the reference triangle.

Weights sum to 1, so an integral over a physical triangle K is
``area(K) * sum(QUAD_WEIGHTS * f(QUAD_POINTS))``.
"""

import numpy as np

_S15 = np.sqrt(15.0)

_P1 = (6.0 - _S15) / 21.0
_P2 = (9.0 - 2.0 * _S15) / 21.0
_P3 = (6.0 + _S15) / 21.0
_P4 = (9.0 + 2.0 * _S15) / 21.0

_W1 = (155.0 - _S15) / 1200.0
_W2 = (155.0 + _S15) / 1200.0

QUAD_POINTS = np.array(
    [
        [1.0 / 3.0, 1.0 / 3.0],
        [_P1, _P1],
        [_P1, _P4],
        [_P4, _P1],
        [_P3, _P3],
        [_P3, _P2],
        [_P2, _P3],
    ]
)

QUAD_WEIGHTS = np.array([0.225, _W1, _W1, _W1, _W2, _W2, _W2])
