"""
Human-readable rendering of the registry report.
"""

from recovery_harness.registry.models import AppSnapshot

STATUS_HEADER = "App Test Harness Status:"


def render_app(snapshot: AppSnapshot) -> str:
    lines = [
        f"App {snapshot.id}: {snapshot.name} (Driver: {snapshot.driver_class})",
        f"  Running: {'Yes' if snapshot.is_running else 'No'}",
        f"  Trials: {snapshot.trial_count}",
        f"  Automatic Recovery: {snapshot.automatic.count} ({snapshot.automatic.pct:.1f}%)",
        f"  Manual Recovery: {snapshot.manual.count} ({snapshot.manual.pct:.1f}%)",
        f"  Failed Recovery: {snapshot.failed.count} ({snapshot.failed.pct:.1f}%)",
    ]
    return "\n".join(lines)


def render_status(snapshots: list[AppSnapshot]) -> str:
    """Render the status document, one block per app in registration order."""
    blocks = [STATUS_HEADER, ""]
    for snapshot in snapshots:
        blocks.append(render_app(snapshot))
        blocks.append("")
    return "\n".join(blocks) + "\n"
