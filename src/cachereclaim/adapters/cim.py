"""Live client adapter: CIM queries and the cache manager COM object.

Queries run through Windows PowerShell, which emits JSON that is parsed
by cachereclaim.adapters.records. The cache manager is the client's
UIResource.UIResourceMgr COM object.
"""

from __future__ import annotations

import json
import logging
import subprocess
from typing import TYPE_CHECKING, Any

from cachereclaim.adapters.records import (
    parse_applications,
    parse_cache_entries,
    parse_element_ids,
    parse_programs,
    parse_updates,
)
from cachereclaim.core.exceptions import CacheManagerError, ProviderUnavailableError


if TYPE_CHECKING:
    from collections.abc import Callable

    from cachereclaim.core.models import (
        ApplicationDeployment,
        CacheEntry,
        PackageProgram,
        SoftwareUpdate,
    )

    Runner = Callable[..., subprocess.CompletedProcess[str]]


logger = logging.getLogger(__name__)

CACHE_INDEX_QUERY = r"""
Get-CimInstance -Namespace 'root\ccm\SoftMgmtAgent' -ClassName 'CacheInfoEx' |
    Select-Object ContentId, Location, PersistInCache |
    ConvertTo-Json -Compress
"""

APPLICATION_QUERY = r"""
$synclets = @(Get-CimInstance -Namespace 'root\ccm\CIModels' -ClassName 'CCM_AppDeliveryTypeSynclet')
$rows = foreach ($app in Get-CimInstance -Namespace 'root\ccm\ClientSDK' -ClassName 'CCM_Application') {
    $app = $app | Get-CimInstance
    foreach ($dt in $app.AppDTs) {
        $contentId = $synclets |
            Where-Object { $_.AppDeliveryTypeId -eq $dt.Id } |
            ForEach-Object { $_.InstallAction.Content.ContentId } |
            Select-Object -First 1
        [pscustomobject]@{
            Name = $dt.Name
            ContentId = $contentId
            InstallState = $app.InstallState
            IsMachineTarget = $app.IsMachineTarget
        }
    }
}
@($rows) | ConvertTo-Json -Compress
"""

PACKAGE_QUERY = r"""
Get-CimInstance -Namespace 'root\ccm\ClientSDK' -ClassName 'CCM_Program' |
    Select-Object PackageID, PackageName, LastRunStatus, RepeatRunBehavior |
    ConvertTo-Json -Compress
"""

UPDATE_QUERY = r"""
Get-CimInstance -Namespace 'root\ccm\SoftwareUpdates\UpdatesStore' -ClassName 'CCM_UpdateStatus' |
    Select-Object UniqueId, Title, Status |
    ConvertTo-Json -Compress
"""

_CACHE_INFO = "$cache = (New-Object -ComObject 'UIResource.UIResourceMgr').GetCacheInfo()"

ENUMERATE_ELEMENTS = (
    _CACHE_INFO
    + r"""
@($cache.GetCacheElements() |
    Where-Object { $_.ContentID -eq {content_id} } |
    ForEach-Object { [pscustomobject]@{ CacheElementId = $_.CacheElementID } }) |
    ConvertTo-Json -Compress
"""
)

DELETE_ELEMENT = _CACHE_INFO + "\n$cache.DeleteCacheElement({element_id})\n"


def ps_quote(value: str) -> str:
    """Quote value as a PowerShell single-quoted string literal."""
    return "'" + value.replace("'", "''") + "'"


class PowerShellError(Exception):
    """A PowerShell invocation failed (not found, timed out or non-zero exit)."""


class PowerShell:
    """Runs PowerShell scripts and decodes their JSON output.

    Attributes:
        executable: The PowerShell executable (powershell.exe or pwsh).
        timeout: Seconds to wait for one script.
    """

    def __init__(
        self,
        executable: str = "powershell.exe",
        timeout: float | None = 300.0,
        runner: Runner | None = None,
    ) -> None:
        """Initialize the PowerShell runner.

        Args:
            executable: PowerShell executable name or path.
            timeout: Seconds to wait for a script. None waits forever.
            runner: Optional replacement for subprocess.run.
        """
        self.executable = executable
        self.timeout = timeout
        self._runner = runner or subprocess.run

    def command(self, script: str) -> list[str]:
        """Build the command line for script."""
        return [
            self.executable,
            "-NoProfile",
            "-NonInteractive",
            "-ExecutionPolicy",
            "Bypass",
            "-Command",
            script,
        ]

    def run(self, script: str) -> str:
        """Run script and return its standard output.

        Raises:
            PowerShellError: If PowerShell cannot be started, times out or
                exits with a non-zero status.
        """
        try:
            result = self._runner(
                self.command(script),
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise PowerShellError(f"{self.executable}: {e}") from e
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise PowerShellError(
                f"{self.executable} exited with {result.returncode}: {stderr}"
            )
        return result.stdout or ""

    def run_json(self, script: str) -> Any:
        """Run script and decode its output as JSON (None for no output).

        Raises:
            PowerShellError: If the script fails or prints invalid JSON.
        """
        output = self.run(script).strip()
        if not output:
            return None
        try:
            return json.loads(output)
        except json.JSONDecodeError as e:
            raise PowerShellError(f"Invalid JSON from {self.executable}: {e}") from e


class CimInventory:
    """Cache index and catalogs of the live management client.

    Implements CacheIndexPort, ApplicationCatalogPort, PackageCatalogPort
    and UpdateCatalogPort.
    """

    def __init__(self, shell: PowerShell | None = None) -> None:
        self._shell = shell or PowerShell()

    def _query(
        self, source: str, script: str, parse: Callable[[object], list[Any]]
    ) -> list[Any]:
        """Run one query, translating any failure to ProviderUnavailableError."""
        try:
            rows = parse(self._shell.run_json(script))
        except (PowerShellError, KeyError, TypeError, ValueError) as e:
            raise ProviderUnavailableError(
                f"Cannot query {source}: {e}", source=source, cause=e
            ) from e
        logger.debug("Queried %d %s row(s)", len(rows), source)
        return rows

    def list_entries(self) -> list[CacheEntry]:
        """List CacheInfoEx entries."""
        return self._query("cache_index", CACHE_INDEX_QUERY, parse_cache_entries)

    def list_applications(self) -> list[ApplicationDeployment]:
        """List application deployment types with their resolved content."""
        return self._query("applications", APPLICATION_QUERY, parse_applications)

    def list_programs(self) -> list[PackageProgram]:
        """List CCM_Program entries."""
        return self._query("packages", PACKAGE_QUERY, parse_programs)

    def list_updates(self) -> list[SoftwareUpdate]:
        """List CCM_UpdateStatus entries."""
        return self._query("updates", UPDATE_QUERY, parse_updates)


class CimCacheManager:
    """Cache manager backed by the UIResource.UIResourceMgr COM object.

    Implements CacheManagerPort.
    """

    def __init__(self, shell: PowerShell | None = None) -> None:
        self._shell = shell or PowerShell()

    def enumerate(self, content_id: str) -> list[str]:
        """List cache element ids holding content_id.

        Raises:
            CacheManagerError: If the cache manager cannot be queried.
        """
        script = ENUMERATE_ELEMENTS.replace("{content_id}", ps_quote(content_id))
        try:
            return parse_element_ids(self._shell.run_json(script))
        except (PowerShellError, ValueError) as e:
            raise CacheManagerError(
                f"Cannot enumerate cache elements for {content_id}: {e}",
                content_id=content_id,
                cause=e,
            ) from e

    def delete(self, element_id: str) -> None:
        """Delete one cache element.

        Raises:
            CacheManagerError: If the element cannot be deleted.
        """
        script = DELETE_ELEMENT.replace("{element_id}", ps_quote(element_id))
        try:
            self._shell.run(script)
        except PowerShellError as e:
            raise CacheManagerError(
                f"Cannot delete cache element {element_id}: {e}",
                content_id=element_id,
                cause=e,
            ) from e
