# -- SPH Smoothing Kernels -- #

'''
Smoothing kernel functions for PBF density estimation and gradients.

Implements the two kernels of the Position Based Fluids paper in 2D
and 3D, each with scalar and vectorized (batch) evaluation:
- Poly6 (standard) kernel for density, velocity smoothing and the
  anti-clustering term
- Spiky kernel for constraint gradients (non-vanishing gradient near
  r = 0 keeps particles from clumping)

Both kernels have compact support at r = h, where h is the kernel
radius (not the smoothing length of the cubic spline convention).

References:
-----------
Mueller et al. (2003) -- Particle-based fluid simulation for
    interactive applications
Macklin & Mueller (2013) -- Position Based Fluids

Sean Bowman [10/19/2026]
'''

from __future__ import annotations

import math
from typing import Protocol

import numpy as np


######################################################################
# -- Kernel Protocol -- #
######################################################################

class SphKernel(Protocol):
    '''Protocol for SPH smoothing kernel functions.'''

    def evaluate(self, r: float, h: float) -> float:
        '''
        Evaluate kernel W(r, h).

        Parameters:
        -----------
        r : float
            Distance between particles [m]
        h : float
            Kernel radius [m]

        Returns:
        --------
        float : Kernel value [1/m^dim]
        '''
        ...

    def gradient(self, rVec: np.ndarray, r: float, h: float) -> np.ndarray:
        '''
        Evaluate kernel gradient nabla_W(r, h).

        The gradient is taken with respect to particle i for
        rVec = r_i - r_j.
        '''
        ...

    def evaluateBatch(self, distances: np.ndarray, h: float) -> np.ndarray:
        '''Evaluate W for an array of distances.'''
        ...

    def gradientBatch(
        self, drVecs: np.ndarray, distances: np.ndarray, h: float
    ) -> np.ndarray:
        '''Evaluate nabla_W for an array of particle pairs.'''
        ...

    @property
    def dimensions(self) -> int:
        '''Number of spatial dimensions (2 or 3).'''
        ...


def _checkDimensions(dimensions: int) -> int:
    if dimensions not in (2, 3):
        raise ValueError(f'Kernels support 2 or 3 dimensions, got {dimensions}')
    return dimensions


######################################################################
# -- Poly6 (Standard) Kernel -- #
######################################################################

class Poly6Kernel:
    '''
    Poly6 smoothing kernel.

    W(r) = sigma * (h^2 - r^2)^3    for 0 <= r < h
           0                         for r >= h

    Normalization constants (sigma):
        2D: sigma = 4 / (pi * h^8)
        3D: sigma = 315 / (64 * pi * h^9)

    Parameters:
    -----------
    dimensions : int
        Number of spatial dimensions (2 or 3)
    '''

    def __init__(self, dimensions: int = 2) -> None:
        self._dimensions = _checkDimensions(dimensions)

    @property
    def dimensions(self) -> int:
        '''Number of spatial dimensions.'''
        return self._dimensions

    def _normalization(self, h: float) -> float:
        if self._dimensions == 2:
            return 4.0 / (math.pi * h ** 8)
        else:
            return 315.0 / (64.0 * math.pi * h ** 9)

    def evaluate(self, r: float, h: float) -> float:
        '''
        Evaluate poly6 kernel W(r, h).

        Parameters:
        -----------
        r : float
            Distance between particles [m]
        h : float
            Kernel radius [m]

        Returns:
        --------
        float : Kernel value [1/m^dim]
        '''
        if r >= h:
            return 0.0

        x = h * h - r * r
        return self._normalization(h) * x * x * x

    def gradientMagnitude(self, r: float, h: float) -> float:
        '''
        Compute dW/dr = -6 * sigma * r * (h^2 - r^2)^2.

        Parameters:
        -----------
        r : float
            Distance between particles [m]
        h : float
            Kernel radius [m]

        Returns:
        --------
        float : dW/dr [1/m^(dim+1)]
        '''
        if r >= h:
            return 0.0

        x = h * h - r * r
        return -6.0 * self._normalization(h) * r * x * x

    def gradient(self, rVec: np.ndarray, r: float, h: float) -> np.ndarray:
        '''
        Evaluate kernel gradient vector nabla_W = (dW/dr) * rVec / r.

        Parameters:
        -----------
        rVec : np.ndarray
            Vector from particle j to particle i (r_i - r_j) [m]
        r : float
            Distance |rVec| [m]
        h : float
            Kernel radius [m]

        Returns:
        --------
        np.ndarray : Gradient vector [1/m^(dim+1)]
        '''
        if r < 1e-12:
            return np.zeros_like(rVec, dtype=float)

        return self.gradientMagnitude(r, h) * rVec / r

    ######################################################################
    # -- Vectorized (Batch) Operations -- #
    ######################################################################

    def evaluateBatch(self, distances: np.ndarray, h: float) -> np.ndarray:
        '''
        Evaluate kernel W(r, h) for an array of distances.

        Parameters:
        -----------
        distances : np.ndarray
            Array of distances [m], shape (N,)
        h : float
            Kernel radius [m]

        Returns:
        --------
        np.ndarray : Kernel values, shape (N,)
        '''
        x = np.maximum(h * h - distances * distances, 0.0)
        return self._normalization(h) * x * x * x

    def gradientMagnitudeBatch(self, distances: np.ndarray, h: float) -> np.ndarray:
        '''Compute dW/dr for an array of distances.'''
        x = np.maximum(h * h - distances * distances, 0.0)
        return -6.0 * self._normalization(h) * distances * x * x

    def gradientBatch(
        self, drVecs: np.ndarray, distances: np.ndarray, h: float
    ) -> np.ndarray:
        '''
        Evaluate kernel gradient vectors for an array of particle pairs.

        Parameters:
        -----------
        drVecs : np.ndarray
            Displacement vectors r_i - r_j, shape (N, dim)
        distances : np.ndarray
            Distances |dr|, shape (N,)
        h : float
            Kernel radius [m]

        Returns:
        --------
        np.ndarray : Gradient vectors, shape (N, dim)
        '''
        dwdr = self.gradientMagnitudeBatch(distances, h)
        return _directionalGradient(dwdr, drVecs, distances)


######################################################################
# -- Spiky Kernel -- #
######################################################################

class SpikyKernel:
    '''
    Spiky smoothing kernel (used for gradients).

    W(r) = sigma * (h - r)^3    for 0 <= r < h
           0                    for r >= h

    The gradient magnitude approaches -3 * sigma * h^2 as r -> 0
    instead of vanishing, which gives the density constraint a
    repulsive push for nearly coincident particles.

    Normalization constants (sigma):
        2D: sigma = 10 / (pi * h^5)
        3D: sigma = 15 / (pi * h^6)

    Parameters:
    -----------
    dimensions : int
        Number of spatial dimensions (2 or 3)
    '''

    def __init__(self, dimensions: int = 2) -> None:
        self._dimensions = _checkDimensions(dimensions)

    @property
    def dimensions(self) -> int:
        '''Number of spatial dimensions.'''
        return self._dimensions

    def _normalization(self, h: float) -> float:
        if self._dimensions == 2:
            return 10.0 / (math.pi * h ** 5)
        else:
            return 15.0 / (math.pi * h ** 6)

    def evaluate(self, r: float, h: float) -> float:
        '''Evaluate spiky kernel W(r, h).'''
        if r >= h:
            return 0.0

        x = h - r
        return self._normalization(h) * x * x * x

    def gradientMagnitude(self, r: float, h: float) -> float:
        '''
        Compute dW/dr = -3 * sigma * (h - r)^2.

        Parameters:
        -----------
        r : float
            Distance between particles [m]
        h : float
            Kernel radius [m]

        Returns:
        --------
        float : dW/dr [1/m^(dim+1)]
        '''
        if r >= h:
            return 0.0

        x = h - r
        return -3.0 * self._normalization(h) * x * x

    def gradient(self, rVec: np.ndarray, r: float, h: float) -> np.ndarray:
        '''Evaluate kernel gradient vector nabla_W = (dW/dr) * rVec / r.'''
        if r < 1e-12:
            # Direction undefined for coincident particles
            return np.zeros_like(rVec, dtype=float)

        return self.gradientMagnitude(r, h) * rVec / r

    ######################################################################
    # -- Vectorized (Batch) Operations -- #
    ######################################################################

    def evaluateBatch(self, distances: np.ndarray, h: float) -> np.ndarray:
        '''Evaluate kernel W(r, h) for an array of distances.'''
        x = np.maximum(h - distances, 0.0)
        return self._normalization(h) * x * x * x

    def gradientMagnitudeBatch(self, distances: np.ndarray, h: float) -> np.ndarray:
        '''Compute dW/dr for an array of distances.'''
        x = np.maximum(h - distances, 0.0)
        return -3.0 * self._normalization(h) * x * x

    def gradientBatch(
        self, drVecs: np.ndarray, distances: np.ndarray, h: float
    ) -> np.ndarray:
        '''
        Evaluate kernel gradient vectors for an array of particle pairs.

        grad_W_k = (dW/dr)_k * (dr_k / |dr_k|)

        Parameters:
        -----------
        drVecs : np.ndarray
            Displacement vectors r_i - r_j, shape (N, dim)
        distances : np.ndarray
            Distances |dr|, shape (N,)
        h : float
            Kernel radius [m]

        Returns:
        --------
        np.ndarray : Gradient vectors, shape (N, dim)
        '''
        dwdr = self.gradientMagnitudeBatch(distances, h)
        return _directionalGradient(dwdr, drVecs, distances)


def _directionalGradient(
    dwdr: np.ndarray, drVecs: np.ndarray, distances: np.ndarray
) -> np.ndarray:
    '''Scale unit pair directions by dW/dr, zero for coincident pairs.'''
    safeDistances = np.where(distances > 1e-12, distances, 1.0)
    gradients = (dwdr / safeDistances)[:, np.newaxis] * drVecs
    gradients[distances < 1e-12] = 0.0
    return gradients


######################################################################
# -- Kernel Factory -- #
######################################################################

def createKernel(kernelType: str, dimensions: int = 2) -> SphKernel:
    '''
    Create a kernel instance by type name.

    Parameters:
    -----------
    kernelType : str
        Kernel type: 'poly6' or 'spiky'
    dimensions : int
        Number of spatial dimensions (2 or 3)

    Returns:
    --------
    SphKernel : Kernel instance

    Raises:
    -------
    ValueError : If kernel type is unknown
    '''
    if kernelType == 'poly6':
        return Poly6Kernel(dimensions)
    elif kernelType == 'spiky':
        return SpikyKernel(dimensions)
    else:
        raise ValueError(f'Unknown kernel type: {kernelType}')
