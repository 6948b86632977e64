"""Inventory refresh trigger adapter."""

from __future__ import annotations

import logging
import subprocess
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Callable


logger = logging.getLogger(__name__)

# Hardware inventory cycle of the management client.
HARDWARE_INVENTORY_SCHEDULE = "{00000000-0000-0000-0000-000000000001}"

TRIGGER_SCRIPT = (
    "Invoke-CimMethod -Namespace 'root\\ccm' -ClassName 'SMS_Client' "
    "-MethodName 'TriggerSchedule' "
    f"-Arguments @{{ sScheduleID = '{HARDWARE_INVENTORY_SCHEDULE}' }} | Out-Null"
)


class PowerShellInventoryTrigger:
    """Fires the client's hardware inventory cycle without waiting for it.

    Implements InventoryTriggerPort. The PowerShell process is started
    detached and never awaited; failing to start it is logged only.
    """

    def __init__(
        self,
        executable: str = "powershell.exe",
        spawner: Callable[..., object] | None = None,
    ) -> None:
        """Initialize the trigger.

        Args:
            executable: PowerShell executable name or path.
            spawner: Optional replacement for subprocess.Popen.
        """
        self.executable = executable
        self._spawner = spawner or subprocess.Popen

    def fire(self) -> None:
        """Start the inventory cycle in the background."""
        command = [
            self.executable,
            "-NoProfile",
            "-NonInteractive",
            "-Command",
            TRIGGER_SCRIPT,
        ]
        try:
            self._spawner(
                command,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            logger.warning("Could not trigger inventory refresh: %s", e)
            return
        logger.info("Triggered inventory refresh")
