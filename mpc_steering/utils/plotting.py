import matplotlib
matplotlib.use("Agg")
import matplotlib.animation as animation
import matplotlib.pyplot as plt
import numpy as np


def plot_cycle(output, waypoints=None, save_path="mpc_cycle.png"):
    """
    One control cycle in the vehicle frame: waypoints, fitted reference and
    the predicted horizon

    Args:
        output: CycleOutput
        waypoints: (N, 2) waypoints already in the vehicle frame
        save_path: PNG file to write
    """
    fig, ax = plt.subplots(figsize=(10, 6))

    if waypoints is not None and len(waypoints) > 0:
        w = np.asarray(waypoints)
        ax.plot(w[:, 0], w[:, 1], 'ko', markersize=6, label='Waypoints')

    if output.next_x:
        ax.plot(output.next_x, output.next_y, 'y-', linewidth=2.5, label='Reference (fitted cubic)')

    if output.mpc_x:
        ax.plot(output.mpc_x, output.mpc_y, 'g.-', linewidth=2, markersize=6, label='MPC prediction')

    ax.plot(0.0, 0.0, 'r>', markersize=12, label='Vehicle')

    info_text = (f'Steering: {output.command.steering:+.3f}\n'
                 f'Throttle: {output.command.throttle:+.3f}\n'
                 f'Status: {output.status}')
    if output.target_speed is not None:
        info_text += f'\nTarget speed: {output.target_speed:.1f}'
    ax.text(0.02, 0.98, info_text, transform=ax.transAxes,
            bbox=dict(boxstyle='round', facecolor='lightblue', alpha=0.8),
            verticalalignment='top', fontsize=10)

    ax.set_xlabel('x (vehicle frame) [m]', fontsize=12, fontweight='bold')
    ax.set_ylabel('y (vehicle frame) [m]', fontsize=12, fontweight='bold')
    ax.set_title('MPC control cycle', fontsize=14, fontweight='bold')
    ax.axis('equal')
    ax.grid(True, alpha=0.3)
    ax.legend(loc='upper right')

    plt.savefig(save_path, dpi=150, bbox_inches='tight')
    plt.close(fig)
    return save_path


def plot_run(result, save_path="mpc_run.png", horizon_every=20):
    """
    Closed-loop run in the map frame: centerline, driven path colored by speed
    and every `horizon_every`-th predicted horizon
    """
    s = np.array(result.states)
    center = result.center

    fig, ax = plt.subplots(figsize=(16, 10))

    loop = np.vstack([center, center[:1]]) if result.closed else center
    ax.plot(loop[:, 0], loop[:, 1], 'k--', alpha=0.4, linewidth=1, label='Centerline')

    if len(s) > 1:
        points = ax.scatter(s[:, 0], s[:, 1], c=s[:, 3], cmap='viridis', s=8, label='Vehicle')
        fig.colorbar(points, ax=ax, label='Speed')
        ax.plot(s[0, 0], s[0, 1], 'go', markersize=12, label='Start', markeredgecolor='darkgreen', markeredgewidth=2)
        ax.plot(s[-1, 0], s[-1, 1], 'ro', markersize=12, label='End', markeredgecolor='darkred', markeredgewidth=2)

    first = True
    for i in range(0, len(result.predictions), max(1, horizon_every)):
        horizon = result.predictions[i]
        if len(horizon) > 0:
            ax.plot(horizon[:, 0], horizon[:, 1], 'r-', alpha=0.6, linewidth=1.5,
                    label='Prediction Horizon' if first else '')
            first = False

    if len(s) > 0:
        info_text = (f'Cycles: {len(result.statuses)}\n'
                     f'Mean |cte|: {result.mean_cross_track:.2f} m\n'
                     f'Max |cte|: {result.max_cross_track:.2f} m\n'
                     f'Avg speed: {np.mean(s[:, 3]):.1f}\n'
                     f'Fallbacks: {result.failures}')
        ax.text(0.02, 0.98, info_text, transform=ax.transAxes,
                bbox=dict(boxstyle='round', facecolor='lightblue', alpha=0.8),
                verticalalignment='top', fontsize=11, fontweight='bold')

    ax.set_xlabel('X [m]', fontsize=14, fontweight='bold')
    ax.set_ylabel('Y [m]', fontsize=14, fontweight='bold')
    ax.set_title('MPC tracking: driven path and prediction horizons', fontsize=16, fontweight='bold')
    ax.axis('equal')
    ax.grid(True, alpha=0.3)
    ax.legend(loc='upper right', fontsize=9, framealpha=0.9)

    plt.tight_layout()
    plt.savefig(save_path, dpi=150, bbox_inches='tight')
    plt.close(fig)
    return save_path


def create_trajectory_gif(result, save_path="mpc_run.gif", interval=50, fps=20, window=60.0):
    """
    Animated GIF following the vehicle, with the reference and predicted
    horizon of every cycle

    Args:
        result: SimulationResult
        save_path: GIF file to write
        interval: delay between frames in milliseconds
        fps: frames per second of the GIF
        window: half-width of the view around the vehicle (meters)
    """
    s = np.array(result.states)
    center = result.center
    fig, ax = plt.subplots(figsize=(10, 8))

    def animate_frame(frame_idx):
        ax.clear()
        ax.plot(center[:, 0], center[:, 1], 'k--', alpha=0.4, linewidth=1)
        ax.plot(s[:frame_idx + 1, 0], s[:frame_idx + 1, 1], 'b-', linewidth=2.5, alpha=0.9, label='Driven')

        x, y, psi = s[frame_idx, 0], s[frame_idx, 1], s[frame_idx, 2]
        ax.plot(x, y, 'ro', markersize=8)
        ax.arrow(x, y, 4.0 * np.cos(psi), 4.0 * np.sin(psi), head_width=1.0, head_length=1.0,
                 fc='red', ec='red', alpha=0.7)

        reference = result.references[frame_idx]
        if len(reference) > 0:
            ax.plot(reference[:, 0], reference[:, 1], 'y-', linewidth=2, label='Reference')
        horizon = result.predictions[frame_idx]
        if len(horizon) > 0:
            ax.plot(horizon[:, 0], horizon[:, 1], 'g.-', linewidth=2, alpha=0.8, label='Prediction Horizon')

        ax.set_xlim(x - window, x + window)
        ax.set_ylim(y - window, y + window)
        ax.set_aspect('equal')
        ax.grid(True, alpha=0.3)
        ax.legend(loc='upper right', fontsize=10)
        ax.set_title(f'MPC tracking - frame {frame_idx + 1}/{len(s)}', fontsize=14, fontweight='bold')
        ax.text(0.02, 0.98, f'Speed: {s[frame_idx, 3]:.1f}\nStatus: {result.statuses[frame_idx]}',
                transform=ax.transAxes, bbox=dict(boxstyle='round', facecolor='lightblue', alpha=0.8),
                verticalalignment='top', fontsize=10, fontweight='bold')

    anim = animation.FuncAnimation(fig, animate_frame, frames=len(s), interval=interval, repeat=True, blit=False)
    anim.save(save_path, writer='pillow', fps=fps, dpi=100)
    plt.close(fig)
    return save_path
