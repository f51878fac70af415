"""Tests for the Zarf CLI wrapper."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from trivy_zarf.exceptions import (
    DecompressFailed,
    InvalidPackageReference,
    PackagePullFailed,
    ToolNotInstalled,
)
from trivy_zarf.scanner.zarf_package import ZarfPackageTool, find_package_file, is_oci_reference


class TestHelpers:
    """Tests for module-level helpers."""

    def test_is_oci_reference(self) -> None:
        """Test oci:// detection."""
        assert is_oci_reference("oci://ghcr.io/org/package:1.0.0")
        assert not is_oci_reference("zarf-package-demo-amd64.tar.zst")
        assert not is_oci_reference("ghcr.io/org/package:1.0.0")

    def test_find_package_file(self, tmp_path: Path) -> None:
        """Test that the first .tar.zst file is found."""
        (tmp_path / "notes.txt").write_text("x")
        (tmp_path / "b.tar.zst").write_bytes(b"")
        (tmp_path / "a.tar.zst").write_bytes(b"")

        assert find_package_file(tmp_path) == tmp_path / "a.tar.zst"

    def test_find_package_file_none(self, tmp_path: Path) -> None:
        """Test a directory without packages."""
        (tmp_path / "dir.tar.zst").mkdir()

        assert find_package_file(tmp_path) is None


class TestZarfPackageTool:
    """Tests for ZarfPackageTool class."""

    @patch("trivy_zarf.scanner.zarf_package.shutil.which")
    def test_is_zarf_installed(self, mock_which: MagicMock) -> None:
        """Test the installation check."""
        mock_which.return_value = None
        assert ZarfPackageTool().is_zarf_installed() is False

        with pytest.raises(ToolNotInstalled, match="Zarf not installed"):
            ZarfPackageTool().ensure_installed()

    @pytest.mark.asyncio
    async def test_pull_rejects_non_oci_reference(self, tmp_path: Path) -> None:
        """Test that a plain path is not pulled."""
        tool = ZarfPackageTool()

        with pytest.raises(InvalidPackageReference):
            await tool.pull("ghcr.io/org/package:1.0.0", tmp_path)

    @pytest.mark.asyncio
    async def test_pull_builds_command_and_finds_package(self, tmp_path: Path) -> None:
        """Test the pull command line and the returned package path."""
        tool = ZarfPackageTool()
        (tmp_path / "zarf-package-demo-arm64-1.0.0.tar.zst").write_bytes(b"pkg")

        with patch.object(tool, "_run", new_callable=AsyncMock, return_value=(0, "")) as mock_run:
            package = await tool.pull(
                "oci://ghcr.io/org/demo:1.0.0",
                tmp_path,
                skip_signature_validation=True,
                architecture="arm64",
            )

        assert package == tmp_path / "zarf-package-demo-arm64-1.0.0.tar.zst"
        mock_run.assert_awaited_once_with(
            [
                "zarf",
                "package",
                "pull",
                "oci://ghcr.io/org/demo:1.0.0",
                "-o",
                str(tmp_path),
                "--skip-signature-validation",
                "-a",
                "arm64",
            ]
        )

    @pytest.mark.asyncio
    async def test_pull_minimal_command(self, tmp_path: Path) -> None:
        """Test that optional flags are omitted by default."""
        tool = ZarfPackageTool()
        (tmp_path / "pkg.tar.zst").write_bytes(b"pkg")

        with patch.object(tool, "_run", new_callable=AsyncMock, return_value=(0, "")) as mock_run:
            await tool.pull("oci://ghcr.io/org/demo:1.0.0", tmp_path)

        cmd = mock_run.call_args.args[0]
        assert "--skip-signature-validation" not in cmd
        assert "-a" not in cmd

    @pytest.mark.asyncio
    async def test_pull_failure(self, tmp_path: Path) -> None:
        """Test that a failing zarf pull raises PackagePullFailed."""
        tool = ZarfPackageTool()

        with patch.object(tool, "_run", new_callable=AsyncMock, return_value=(1, "unauthorized\n")):
            with pytest.raises(PackagePullFailed, match="unauthorized"):
                await tool.pull("oci://ghcr.io/org/demo:1.0.0", tmp_path)

    @pytest.mark.asyncio
    async def test_pull_without_package_file(self, tmp_path: Path) -> None:
        """Test that a pull producing no .tar.zst raises PackagePullFailed."""
        tool = ZarfPackageTool()

        with patch.object(tool, "_run", new_callable=AsyncMock, return_value=(0, "")):
            with pytest.raises(PackagePullFailed, match="no .tar.zst file"):
                await tool.pull("oci://ghcr.io/org/demo:1.0.0", tmp_path)

    @pytest.mark.asyncio
    async def test_pull_executable_missing(self, tmp_path: Path) -> None:
        """Test that a zarf binary that cannot start raises PackagePullFailed."""
        tool = ZarfPackageTool()

        with patch.object(tool, "_run", new_callable=AsyncMock, side_effect=FileNotFoundError("zarf")):
            with pytest.raises(PackagePullFailed) as exc_info:
                await tool.pull("oci://ghcr.io/org/demo:1.0.0", tmp_path)

        assert isinstance(exc_info.value.cause, FileNotFoundError)

    @pytest.mark.asyncio
    async def test_decompress(self, tmp_path: Path) -> None:
        """Test the decompress command line."""
        tool = ZarfPackageTool(zarf_path="/opt/zarf")
        archive = tmp_path / "pkg.tar.zst"

        with patch.object(tool, "_run", new_callable=AsyncMock, return_value=(0, "")) as mock_run:
            await tool.decompress(archive, tmp_path / "out")

        mock_run.assert_awaited_once_with(
            ["/opt/zarf", "tools", "archiver", "decompress", str(archive), str(tmp_path / "out")]
        )

    @pytest.mark.asyncio
    async def test_decompress_failure(self, tmp_path: Path) -> None:
        """Test that a failing decompress raises DecompressFailed."""
        tool = ZarfPackageTool()

        with patch.object(tool, "_run", new_callable=AsyncMock, return_value=(2, "corrupt archive")):
            with pytest.raises(DecompressFailed, match="corrupt archive"):
                await tool.decompress(tmp_path / "pkg.tar.zst", tmp_path)

    @pytest.mark.asyncio
    async def test_run_captures_stderr(self) -> None:
        """Test _run returns the exit code and decoded stderr."""
        tool = ZarfPackageTool()
        process = MagicMock()
        process.returncode = 3
        process.communicate = AsyncMock(return_value=(None, b"bad things\n"))

        with patch(
            "trivy_zarf.scanner.zarf_package.asyncio.create_subprocess_exec",
            new_callable=AsyncMock,
            return_value=process,
        ):
            returncode, stderr = await tool._run(["zarf", "version"])

        assert returncode == 3
        assert stderr == "bad things\n"
