"""Animated replay of crossing simulation runs.

This module renders recorded simulation results with
matplotlib.animation.FuncAnimation.
"""

import os
import numpy as np
import matplotlib

# Saving only; force a non-GUI backend unless one was requested explicitly
if os.environ.get("MPLBACKEND") is None:
    matplotlib.use("Agg")

import matplotlib.pyplot as plt
import matplotlib.animation as animation
from matplotlib.patches import Circle, Polygon
from pathlib import Path
from typing import List, Optional, Tuple
from loguru import logger

from ..core.data_structures import Crossing, CrossingSimulationResult
from ..core.geometry import perpendicular
from ..pedestrian.actor import STATE_COLORS


class CrossingAnimator:
    """Create animations from crossing simulation results.

    Features:
    - Road band and crossing zone
    - Pedestrians coloured by state
    - Vehicles, highlighted while stopped
    - Pedestrian collision polygons
    - Export to GIF or MP4

    Args:
        results: List of simulation results
        crossing: Crossing the results were recorded on
        figsize: Figure size (width, height) in inches
        dpi: Dots per inch for rendered output
        interval: Frame interval in milliseconds
        pedestrian_size: Radius of the drawn pedestrians
    """

    def __init__(
        self,
        results: List[CrossingSimulationResult],
        crossing: Crossing,
        figsize: Tuple[float, float] = (8, 8),
        dpi: int = 100,
        interval: int = 50,
        pedestrian_size: float = 8.0
    ):
        if len(results) == 0:
            raise ValueError("CrossingAnimator requires at least one result")
        self.results = results
        self.crossing = crossing
        self.figsize = figsize
        self.dpi = dpi
        self.interval = interval
        self.pedestrian_size = pedestrian_size
        self.n_frames = len(results)

        self.fig = None
        self.ax = None
        self.artists = None
        self.anim = None

        logger.info(f"Animator initialized with {self.n_frames} frames")

    def create_animation(
        self,
        show_polygons: bool = True,
        vehicle_color: str = 'tab:blue',
        stopped_vehicle_color: str = 'tab:red',
        save_path: Optional[Path] = None,
        writer: str = 'pillow',  # 'pillow' for GIF, 'ffmpeg' for MP4
        fps: int = 20
    ) -> animation.FuncAnimation:
        """Create animation from simulation results.

        Args:
            show_polygons: Show pedestrian collision polygons
            vehicle_color: Colour for moving vehicles
            stopped_vehicle_color: Colour for stopped vehicles
            save_path: Path to save animation (None = don't save)
            writer: Animation writer ('pillow' for GIF, 'ffmpeg' for MP4)
            fps: Frames per second for saved animation

        Returns:
            FuncAnimation object
        """
        logger.info("Creating animation...")

        self.fig, self.ax = plt.subplots(figsize=self.figsize, dpi=self.dpi)
        self._setup_plot()

        artists = {
            'pedestrians': [],
            'polygons': [],
            'vehicles': self.ax.scatter([], [], marker='s', s=80, zorder=7),
            'time_text': self.ax.text(
                0.02, 0.98, '', transform=self.ax.transAxes,
                fontsize=12, verticalalignment='top',
                bbox=dict(boxstyle='round', facecolor='wheat', alpha=0.5)
            ),
        }
        self.artists = artists

        self.anim = animation.FuncAnimation(
            self.fig,
            self._update_frame,
            fargs=(artists, show_polygons, vehicle_color, stopped_vehicle_color),
            frames=self.n_frames,
            interval=self.interval,
            blit=False,
            repeat=True
        )

        logger.info(f"Animation created with {self.n_frames} frames")

        if save_path is not None:
            self._save_animation(save_path, writer, fps)

        return self.anim

    def _setup_plot(self):
        """Draw the static road and crossing, fit limits to the recorded run."""
        self.ax.set_xlabel('X', fontsize=12)
        self.ax.set_ylabel('Y', fontsize=12)
        self.ax.set_title('Pedestrian Crossing Simulation', fontsize=14, fontweight='bold')
        self.ax.set_aspect('equal', adjustable='box')
        self.ax.set_facecolor('#4C9A2A')

        all_xy = [self.crossing.center]
        for result in self.results:
            all_xy.extend(p.position for p in result.pedestrians)
            all_xy.extend(np.array([v.x, v.y]) for v in result.vehicles)
        all_xy = np.array(all_xy)

        margin = 50.0
        x_min, y_min = all_xy.min(axis=0) - margin
        x_max, y_max = all_xy.max(axis=0) + margin
        self.ax.set_xlim(x_min, x_max)
        self.ax.set_ylim(y_min, y_max)

        direction = self.crossing.direction_vector / np.linalg.norm(self.crossing.direction_vector)
        perp = perpendicular(direction)
        half_width = self.crossing.width / 2
        road_half_length = float(np.hypot(x_max - x_min, y_max - y_min))

        self.ax.add_patch(Polygon(
            self._band(direction, perp, road_half_length, half_width),
            closed=True, facecolor='#555555', edgecolor='none', zorder=0
        ))
        self.ax.add_patch(Polygon(
            self._band(direction, perp, 2.0 * self.pedestrian_size, half_width),
            closed=True, facecolor='white', edgecolor='white',
            hatch='||', alpha=0.5, zorder=1
        ))

    def _band(self, direction, perp, half_length, half_width) -> np.ndarray:
        c = self.crossing.center
        return np.array([
            c - direction * half_length - perp * half_width,
            c + direction * half_length - perp * half_width,
            c + direction * half_length + perp * half_width,
            c - direction * half_length + perp * half_width,
        ])

    def _update_frame(self, frame, artists, show_polygons, vehicle_color, stopped_vehicle_color):
        """Update frame for animation."""
        result = self.results[frame]

        for patch in artists['pedestrians'] + artists['polygons']:
            patch.remove()
        artists['pedestrians'] = []
        artists['polygons'] = []

        for ped in result.pedestrians:
            circle = Circle(
                tuple(ped.position), radius=self.pedestrian_size,
                facecolor=STATE_COLORS[ped.state], edgecolor='white',
                linewidth=2, zorder=6
            )
            self.ax.add_patch(circle)
            artists['pedestrians'].append(circle)

            if show_polygons and len(ped.collision_polygon) > 0:
                poly = Polygon(ped.collision_polygon, closed=True, fill=False,
                               edgecolor='yellow', linestyle='--', zorder=5)
                self.ax.add_patch(poly)
                artists['polygons'].append(poly)

        if result.vehicles:
            artists['vehicles'].set_offsets([[v.x, v.y] for v in result.vehicles])
            artists['vehicles'].set_color([
                stopped_vehicle_color if abs(v.speed) < 1e-9 else vehicle_color
                for v in result.vehicles
            ])
        else:
            artists['vehicles'].set_offsets(np.empty((0, 2)))

        artists['time_text'].set_text(f'Time: {result.time / 1000.0:.1f} s')

        return [artists['vehicles'], artists['time_text']] + artists['pedestrians'] + artists['polygons']

    def _save_animation(self, save_path: Path, writer: str, fps: int):
        """Save animation to file."""
        save_path = Path(save_path)
        save_path.parent.mkdir(parents=True, exist_ok=True)
        target_ext = '.gif' if writer == 'pillow' else '.mp4'
        if not str(save_path).endswith(target_ext):
            save_path = save_path.with_suffix(target_ext)

        logger.info(f"Saving animation to {save_path} (writer={writer}, fps={fps})...")

        try:
            if writer == 'pillow':
                self.anim.save(str(save_path), writer='pillow', fps=fps, dpi=self.dpi)
            elif writer == 'ffmpeg':
                self.anim.save(
                    str(save_path),
                    writer='ffmpeg',
                    fps=fps,
                    dpi=self.dpi,
                    extra_args=['-vcodec', 'libx264']
                )
            else:
                raise ValueError(f"Unsupported writer: {writer}")
        except Exception as e:
            logger.error(f"Failed to save animation: {e}")
            logger.info("Ensure pillow (GIF) or ffmpeg (MP4) is installed and output path is writable")
            raise
        finally:
            plt.close(self.fig)

        size_mb = save_path.stat().st_size / (1024 * 1024)
        logger.info(f"✓ Animation saved successfully ({size_mb:.1f} MB)")

    def show(self):
        """Display the animation."""
        if self.anim is None:
            raise RuntimeError("Animation not created. Call create_animation() first.")
        plt.show()

    def close(self):
        """Close the animation and release resources."""
        if self.fig is not None:
            plt.close(self.fig)
        self.fig = None
        self.anim = None


def create_simple_animation(
    results: List[CrossingSimulationResult],
    crossing: Crossing,
    output_path: Optional[Path] = None,
    show: bool = True,
    show_polygons: bool = True,
    fps: int = 20,
    pedestrian_size: float = 8.0,
    **kwargs,
) -> CrossingAnimator:
    """Convenience function to create and display/save animation.

    Args:
        results: Simulation results
        crossing: Crossing the results were recorded on
        output_path: Path to save animation (None = don't save)
        show: Whether to display the animation
        pedestrian_size: Radius of the drawn pedestrians
        **kwargs: Additional arguments passed to create_animation()

    Returns:
        CrossingAnimator instance
    """
    animator = CrossingAnimator(results, crossing, pedestrian_size=pedestrian_size)

    writer = 'pillow'
    if output_path is not None and Path(output_path).suffix.lower() == '.mp4':
        writer = 'ffmpeg'

    animator.create_animation(
        show_polygons=show_polygons,
        save_path=output_path,
        writer=writer,
        fps=fps,
        **kwargs
    )

    if show:
        animator.show()

    return animator
