"""NVIDIA driver, CUDA toolkit and cuDNN detection."""

import re
from dataclasses import dataclass
from pathlib import Path

from ..execution import ToolInvoker
from ..reporting import Reporter

CUDNN_HEADERS = (Path("/usr/include/cudnn.h"), Path("/usr/local/cuda/include/cudnn.h"))
CUDNN_VERSION_HEADERS = (
    Path("/usr/include/cudnn_version.h"),
    Path("/usr/local/cuda/include/cudnn_version.h"),
)


@dataclass
class CudaReport:
    driver_version: str | None = None
    nvcc_release: str | None = None
    cudnn_header: Path | None = None
    cudnn_major: str | None = None

    @property
    def toolkit_ready(self) -> bool:
        return bool(self.driver_version and self.nvcc_release)


def parse_compute_capability(output: str) -> str | None:
    """Turn `nvidia-smi --query-gpu=compute_cap --format=csv` output into CUDA_ARCH_BIN.

    Multiple GPUs yield a comma separated list of distinct capabilities.
    """
    caps = []
    for line in output.splitlines():
        value = line.strip()
        if re.fullmatch(r"\d+\.\d+", value) and value not in caps:
            caps.append(value)
    return ",".join(caps) if caps else None


def parse_driver_version(output: str) -> str | None:
    match = re.search(r"Driver Version:\s*([\d.]+)", output)
    return match.group(1) if match else None


def parse_nvcc_release(output: str) -> str | None:
    match = re.search(r"release\s+([\d.]+)", output)
    return match.group(1) if match else None


def parse_cudnn_major(text: str) -> str | None:
    match = re.search(r"#define\s+CUDNN_MAJOR\s+(\d+)", text)
    return match.group(1) if match else None


async def query_compute_capability(invoker: ToolInvoker) -> str | None:
    result = await invoker.query(["nvidia-smi", "--query-gpu=compute_cap", "--format=csv"])
    if not result.ok:
        return None
    return parse_compute_capability(result.output)


async def detect_cuda(invoker: ToolInvoker, reporter: Reporter) -> CudaReport:
    report = CudaReport()

    smi = await invoker.query(["nvidia-smi"])
    if smi.ok:
        report.driver_version = parse_driver_version(smi.output)
        reporter.success(f"NVIDIA driver is installed (version {report.driver_version or 'unknown'}).")
    else:
        reporter.error("NVIDIA driver is NOT installed!")

    nvcc = await invoker.query(["nvcc", "--version"])
    if nvcc.ok:
        report.nvcc_release = parse_nvcc_release(nvcc.output)
        reporter.success(f"CUDA is installed (release {report.nvcc_release or 'unknown'}).")
    else:
        reporter.error("CUDA is NOT installed!")

    report.cudnn_header = next((p for p in CUDNN_HEADERS if p.is_file()), None)
    if report.cudnn_header:
        for header in CUDNN_VERSION_HEADERS:
            if header.is_file():
                report.cudnn_major = parse_cudnn_major(header.read_text(errors="replace"))
                break
        reporter.success(f"cuDNN is installed (major {report.cudnn_major or 'unknown'}).")
    else:
        reporter.error("cuDNN is NOT installed!")

    return report


__all__ = [
    "CudaReport",
    "parse_compute_capability",
    "parse_driver_version",
    "parse_nvcc_release",
    "parse_cudnn_major",
    "query_compute_capability",
    "detect_cuda",
]
