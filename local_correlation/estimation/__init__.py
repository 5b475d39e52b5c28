"""
Numerical core of the local Gaussian correlation engine.

Key Components:
- bandwidth: Silverman's rule and bandwidth overrides
- grid: padded evaluation grids
- estimator: kernel-weighted local correlation and density
- marginals: density-weighted marginal curves
- bootstrap: bootstrap standard errors and t-statistics
- cache: fingerprinted result cache
"""
