"""Trivy CLI wrapper for scanning OCI image layouts."""

import asyncio
import json
import logging
import re
import shutil
from pathlib import Path

from trivy_zarf.consts import TRIVY_ERROR_DETAIL_LIMIT, TRIVY_INSTALL_URL, TRIVY_SEVERITIES
from trivy_zarf.exceptions import ScanFailed, ToolNotInstalled
from trivy_zarf.models.model_scanner import ScanErrorType, ScanOptions, ScanReport, Vulnerabilities

logger = logging.getLogger(__name__)


class TrivyScanner:
    """Wraps Trivy CLI for scanning OCI image layouts."""

    def __init__(self, trivy_path: str = "trivy", timeout: int | None = None):
        """Initialize TrivyScanner.

        Args:
            trivy_path: Path to trivy executable (default: "trivy")
            timeout: Scan timeout in seconds (default: None, wait indefinitely)
        """
        self.trivy_path = trivy_path
        self.timeout = timeout

    def is_trivy_installed(self) -> bool:
        """Check if Trivy is installed and accessible.

        Returns:
            True if Trivy is installed, False otherwise
        """
        return shutil.which(self.trivy_path) is not None

    def ensure_installed(self) -> None:
        """Raise ToolNotInstalled if Trivy is not on PATH."""
        if not self.is_trivy_installed():
            raise ToolNotInstalled("Trivy", TRIVY_INSTALL_URL)

    def _classify_error(self, error_msg: str, returncode: int) -> ScanErrorType:
        """Classify error type based on Trivy stderr output.

        Args:
            error_msg: Error message from stderr
            returncode: Process return code

        Returns:
            ScanErrorType classification
        """
        error_lower = error_msg.lower()

        # Vulnerability DB errors (checked first, they usually mention the network too)
        if re.search(r"(db|database).*download", error_lower):
            return ScanErrorType.DB_DOWNLOAD
        if re.search(r"download.*(db|database)", error_lower):
            return ScanErrorType.DB_DOWNLOAD

        # Rate limiting
        if "rate limit" in error_lower or "too many requests" in error_lower:
            return ScanErrorType.RATE_LIMIT
        if "toomanyrequests" in error_lower:
            return ScanErrorType.RATE_LIMIT

        # Authorization errors
        if "unauthorized" in error_lower or "forbidden" in error_lower:
            return ScanErrorType.UNAUTHORIZED

        # Network errors
        if "timeout" in error_lower or "timed out" in error_lower:
            return ScanErrorType.NETWORK_TIMEOUT
        if "network" in error_lower or "connection" in error_lower:
            return ScanErrorType.NETWORK_TIMEOUT

        # Layout errors
        if "oci" in error_lower and ("layout" in error_lower or "index" in error_lower):
            return ScanErrorType.INVALID_LAYOUT
        if re.search(r"(blob|manifest).*not found", error_lower):
            return ScanErrorType.INVALID_LAYOUT

        # Trivy crash (non-zero exit without clear error)
        if returncode != 0 and not error_msg.strip():
            return ScanErrorType.TRIVY_CRASH

        return ScanErrorType.UNKNOWN

    def build_command(self, layout_dir: Path, options: ScanOptions) -> list[str]:
        """Build the trivy command line for one layout.

        Args:
            layout_dir: OCI layout directory to scan
            options: Scan options

        Returns:
            Command as a list of arguments
        """
        cmd = [
            self.trivy_path,
            "image",
            "--input",
            str(layout_dir),
            "--db-repository",
            options.db_repository,
        ]
        if options.output_path is not None:
            cmd.extend(["--format", "json", "--output", str(options.output_path)])
        return cmd

    async def scan(self, layout_dir: Path, options: ScanOptions) -> ScanReport:
        """Scan an OCI layout with Trivy.

        Trivy's report goes to options.output_path as JSON when set, otherwise
        to this process's stdout. Trivy's stderr is captured and attached to
        ScanFailed on failure.

        Args:
            layout_dir: OCI layout directory containing a single-entry index.json
            options: Scan options

        Returns:
            ScanReport, with severity counts when a JSON report was written

        Raises:
            ScanFailed: If Trivy cannot be started, exits non-zero, times out,
                or writes an unreadable report
        """
        cmd = self.build_command(layout_dir, options)
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=None,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ScanFailed(
                f"Could not start {self.trivy_path}",
                error_type=ScanErrorType.TRIVY_CRASH,
                cause=e,
            ) from e

        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except TimeoutError:
            process.kill()
            await process.wait()
            raise ScanFailed(
                f"Scan timeout ({self.timeout}s)",
                error_type=ScanErrorType.SCAN_TIMEOUT,
            )

        error_msg = (stderr or b"").decode("utf-8", errors="replace")

        if process.returncode != 0:
            error_type = self._classify_error(error_msg, process.returncode)
            logger.debug(f"Trivy failed ({error_type.value}): {error_msg}")
            raise ScanFailed(
                f"Trivy error (code {process.returncode})",
                returncode=process.returncode,
                detail=error_msg[-TRIVY_ERROR_DETAIL_LIMIT:].strip(),
                error_type=error_type,
            )

        if error_msg:
            logger.debug(f"Trivy output: {error_msg}")

        if options.output_path is None:
            return ScanReport()

        try:
            json_output = Path(options.output_path).read_text(encoding="utf-8")
            vulnerabilities = self._parse_trivy_output(json_output)
        except (OSError, ValueError) as e:
            raise ScanFailed(
                f"Trivy report unreadable: {options.output_path}",
                error_type=ScanErrorType.UNKNOWN,
                cause=e,
            ) from e

        return ScanReport(output_path=Path(options.output_path), vulnerabilities=vulnerabilities)

    def _parse_trivy_output(self, json_output: str) -> Vulnerabilities:
        """Parse Trivy JSON output to extract vulnerability counts.

        Args:
            json_output: JSON output from Trivy

        Returns:
            Vulnerabilities object with counts by severity

        Raises:
            ValueError: If the output is not valid JSON
        """
        data = json.loads(json_output)
        if not isinstance(data, dict):
            raise ValueError("Trivy report is not a JSON object")
        counts = {severity: 0 for severity in TRIVY_SEVERITIES}

        # Trivy output structure: {"Results": [{"Vulnerabilities": [...]}]}
        for result in data.get("Results") or []:
            for vuln in result.get("Vulnerabilities") or []:
                severity = vuln.get("Severity", "UNKNOWN")
                counts[severity if severity in counts else "UNKNOWN"] += 1

        return Vulnerabilities(
            critical=counts["CRITICAL"],
            high=counts["HIGH"],
            medium=counts["MEDIUM"],
            low=counts["LOW"],
            unknown=counts["UNKNOWN"],
        )
