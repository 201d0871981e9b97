"""Pytest fixtures for texture conversion tests."""

import stat
from pathlib import Path

import pytest

from texture_service.conversion import ConversionService, ExecutionResult
from texture_service.conversion.adapters import LocalOutputArea
from texture_service.conversion.framing import BTX_MAGIC

# Start of a KTX 1.1 identifier, enough for the tool stand-ins
KTX_PAYLOAD = bytes([0xAB, 0x4B, 0x54, 0x58, 0x20, 0x31, 0x31, 0xBB, 0x0D, 0x0A, 0x1A, 0x0A]) + b"\x00" * 16
PNG_PAYLOAD = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


class FakeConverter:
    """Stand-in for the external tool.

    Copies the input to the expected output. Inputs whose name contains
    "slow" time out, "broken" exits non-zero, "silent" exits cleanly
    without writing anything.
    """

    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    async def run(self, args: list[str], expected_output: Path) -> ExecutionResult:
        self.calls.append(list(args))
        source = Path(args[args.index("-i") + 1])
        if "slow" in source.name:
            return ExecutionResult(returncode=-9, stderr="", timed_out=True, output_exists=False, execution_time=30.0)
        if "broken" in source.name:
            return ExecutionResult(returncode=2, stderr="unsupported texture\n", timed_out=False, output_exists=False)
        if "silent" in source.name:
            return ExecutionResult(returncode=0, stderr="", timed_out=False, output_exists=expected_output.exists())
        expected_output.write_bytes(source.read_bytes())
        return ExecutionResult(returncode=0, stderr="", timed_out=False, output_exists=True)


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def output_dir(tmp_path):
    return tmp_path / "outputs"


@pytest.fixture
def fake_converter():
    return FakeConverter()


@pytest.fixture
def output_area(output_dir):
    area = LocalOutputArea(output_dir)
    area.ensure()
    return area


@pytest.fixture
def service(fake_converter, output_area, upload_dir):
    return ConversionService(fake_converter, output_area, upload_dir=upload_dir)


@pytest.fixture
def btx_bytes():
    return BTX_MAGIC + KTX_PAYLOAD


@pytest.fixture
def make_tool(tmp_path):
    """Write an executable shell script standing in for PVRTexToolCLI.

    The script receives ``-i IN -d OUT -ft FMT`` so ``$2`` is the input
    and ``$4`` the output.
    """

    def _make(body: str, name: str = "PVRTexToolCLI") -> Path:
        path = tmp_path / "bin" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("#!/bin/sh\n" + body + "\n", encoding="utf-8")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _make
