"""Visualization module for crossing simulations."""

from .animator import CrossingAnimator, create_simple_animation

__all__ = ['CrossingAnimator', 'create_simple_animation']
