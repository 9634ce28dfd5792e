"""OpenCV 4.x build from source, with optional CUDA support."""

import logging
from dataclasses import dataclass
from pathlib import Path

from ..data_loader import get_opencv_profile
from ..errors import ResourceMissing
from ..execution import ToolInvoker
from ..installer import InstallerKind, PackageSpec
from ..prompts import CUDA, CUDA_DEPS, FFMPEG, INSTALL_OPENCV
from ..runner import Step, StepOutcome
from .base import Task, TaskContext, install_step
from .cuda import detect_cuda, query_compute_capability

_logging = logging.getLogger(__name__)

BUILD_ARTIFACTS = ("bin", "lib", "OpenCVConfig*.cmake", "OpenCVModules.cmake")


@dataclass(frozen=True)
class BuildConfiguration:
    install_prefix: Path = Path("/usr/local")
    cuda_enabled: bool = False
    cuda_arch_bin: str | None = None
    ffmpeg_enabled: bool = True


@dataclass(frozen=True)
class PythonPaths:
    executable: str | None = None
    packages_path: str | None = None
    numpy_include: str | None = None


def cmake_flags(
    base: dict[str, str],
    config: BuildConfiguration,
    python: PythonPaths,
    extra_modules: Path,
) -> list[str]:
    """Assemble the -D options for one cmake invocation."""
    flags = {"CMAKE_INSTALL_PREFIX": str(config.install_prefix)}
    flags.update(base)

    state = "ON" if config.cuda_enabled else "OFF"
    flags["WITH_CUDA"] = state
    flags["WITH_CUDNN"] = state
    flags["OPENCV_DNN_CUDA"] = state
    if config.cuda_enabled and config.cuda_arch_bin:
        flags["CUDA_ARCH_BIN"] = config.cuda_arch_bin

    flags["WITH_FFMPEG"] = "ON" if config.ffmpeg_enabled else "OFF"
    flags["OPENCV_EXTRA_MODULES_PATH"] = str(extra_modules)

    if python.executable:
        flags["PYTHON_EXECUTABLE"] = python.executable
    if python.packages_path:
        flags["PYTHON3_PACKAGES_PATH"] = python.packages_path
    if python.numpy_include:
        flags["PYTHON3_NUMPY_INCLUDE_DIRS"] = python.numpy_include

    return [f"-D{key}={value}" for key, value in flags.items()]


async def probe_python(invoker: ToolInvoker) -> PythonPaths:
    async def ask(code: str) -> str | None:
        result = await invoker.query(["python3", "-c", code])
        value = result.output.strip()
        return value if result.ok and value else None

    return PythonPaths(
        executable=await ask("import sys; print(sys.executable)"),
        packages_path=await ask("import site; print(site.getsitepackages()[0])"),
        numpy_include=await ask("import numpy; print(numpy.get_include())"),
    )


async def installed_opencv_version(invoker: ToolInvoker) -> str | None:
    result = await invoker.query(["pkg-config", "--modversion", "opencv4"])
    if result.ok and result.output.strip():
        return result.output.strip()
    return None


def missing_artifacts(build_dir: Path) -> list[str]:
    return [pattern for pattern in BUILD_ARTIFACTS if not any(build_dir.glob(pattern))]


class OpenCVTask(Task):
    name = "build-opencv"
    title = "Build OpenCV"

    def __init__(self):
        self.profile = get_opencv_profile()
        self.config: BuildConfiguration | None = None
        self.already_built = False

    def source_dir(self, ctx: TaskContext) -> Path:
        return ctx.settings.work_dir / self.profile.source_dir

    def build_dir(self, ctx: TaskContext) -> Path:
        return self.source_dir(ctx) / "build"

    def tool_specs(self, ctx: TaskContext) -> list[PackageSpec]:
        specs = [PackageSpec(name) for name in self.profile.required]
        specs += [PackageSpec(name, optional=True) for name in self.profile.optional]
        return specs + self.extra_packages(ctx)

    def cuda_specs(self) -> list[PackageSpec]:
        specs = [PackageSpec(name) for name in self.profile.cuda_dependencies]
        specs += [PackageSpec(name, InstallerKind.PIP) for name in self.profile.pip]
        return specs

    def packages(self, ctx: TaskContext) -> dict[str, list[PackageSpec]]:
        return {"build tools": self.tool_specs(ctx), "cuda dependencies": self.cuda_specs()}

    def summary(self, ctx: TaskContext) -> list[str]:
        return [
            "This will build OpenCV 4.x with the contrib modules:",
            "1. Install build tools",
            f"2. Download and extract sources into {ctx.settings.work_dir}",
            "3. Choose build options (CUDA, FFmpeg)",
            "4. Configure with CMake and compile",
            f"5. Optionally install into {ctx.settings.install_prefix}",
            "6. Verify the build",
        ]

    def build_steps(self, ctx: TaskContext) -> list[Step]:
        return [
            Step("Install build tools", lambda: install_step(ctx, self.tool_specs(ctx))),
            Step("Fetch OpenCV sources", lambda: self.fetch_sources(ctx), fatal_on_failure=True),
            Step("Choose build options", lambda: self.choose_options(ctx)),
            Step("Configure with CMake", lambda: self.configure(ctx), fatal_on_failure=True),
            Step("Compile", lambda: self.compile(ctx), fatal_on_failure=True),
            Step("Install system-wide", lambda: self.install(ctx), fatal_on_failure=True),
            Step("Verify build", lambda: self.verify(ctx)),
        ]

    async def fetch_sources(self, ctx: TaskContext) -> StepOutcome:
        work_dir = ctx.settings.work_dir
        source = self.source_dir(ctx)
        if source.is_dir() and any(source.iterdir()):
            ctx.reporter.success(f"{source.name} already exists and is not empty. Skipping download and extraction.")
            return StepOutcome.already_present(str(source))

        for archive in self.profile.archives:
            if (work_dir / archive.zip).is_file():
                ctx.reporter.success(f"{archive.zip} already exists. Skipping download.")
                continue
            ctx.reporter.info(f"Downloading {archive.name}...")
            await ctx.invoker.invoke(
                ["wget", "-O", archive.zip, archive.url],
                cwd=work_dir,
                timeout=ctx.settings.timeouts.download,
            )

        for archive in self.profile.archives:
            if (work_dir / archive.directory).is_dir():
                ctx.reporter.success(f"{archive.directory} already extracted. Skipping extraction.")
                continue
            ctx.reporter.info(f"Extracting {archive.name}...")
            await ctx.invoker.invoke(
                ["unzip", "-q", archive.zip],
                cwd=work_dir,
                timeout=ctx.settings.timeouts.install,
            )

        for archive in self.profile.archives:
            zip_path = work_dir / archive.zip
            if zip_path.is_file() and not ctx.invoker.dry_run:
                ctx.reporter.info(f"Removing {archive.zip}.")
                zip_path.unlink()

        if not ctx.invoker.dry_run and not source.is_dir():
            raise ResourceMissing(str(source), "The downloaded archive did not contain it.")

        ctx.reporter.success("OpenCV and OpenCV Contrib are ready!")
        return StepOutcome.success()

    async def choose_options(self, ctx: TaskContext) -> StepOutcome:
        prefix = ctx.settings.install_prefix
        if not ctx.decisions.resolve(CUDA):
            self.config = BuildConfiguration(install_prefix=prefix)
            ctx.reporter.info("Building without CUDA.")
            return StepOutcome.success("cuda disabled")

        arch = await query_compute_capability(ctx.invoker)
        report = await detect_cuda(ctx.invoker, ctx.reporter)
        if not arch:
            ctx.reporter.warn("Could not read the GPU compute capability; CUDA_ARCH_BIN is left to CMake.")
        if not report.toolkit_ready:
            ctx.reporter.warn("The CUDA build is likely to fail without the driver and toolkit.")

        ctx.reporter.warn("Ensure the following paths are set before using OpenCV with CUDA:")
        ctx.reporter.detail("\n".join(self.profile.cuda_env_hints))
        ctx.reporter.detail("Add them to ~/.bashrc or ~/.zshrc and open a new shell.")

        if ctx.decisions.resolve(CUDA_DEPS):
            deps = await install_step(ctx, self.cuda_specs())
            if deps.is_failure:
                ctx.reporter.warn(deps.reason or "some CUDA dependencies failed to install")
        else:
            ctx.reporter.warn("Skipping installation of CUDA dependencies.")

        ffmpeg = ctx.decisions.resolve(FFMPEG)
        if not ffmpeg:
            ctx.reporter.warn("Setting WITH_FFMPEG=OFF may lead to missing functionality.")

        self.config = BuildConfiguration(
            install_prefix=prefix,
            cuda_enabled=True,
            cuda_arch_bin=arch,
            ffmpeg_enabled=ffmpeg,
        )
        return StepOutcome.success(f"cuda enabled (arch {arch or 'auto'})")

    async def configure(self, ctx: TaskContext) -> StepOutcome:
        source = self.source_dir(ctx)
        if not source.is_dir() and not ctx.invoker.dry_run:
            raise ResourceMissing(str(source), "Please ensure it is downloaded and extracted.")

        build_dir = self.build_dir(ctx)
        if (build_dir / "Makefile").is_file():
            self.already_built = True
            ctx.reporter.success("OpenCV has already been configured. Skipping CMake.")
            return StepOutcome.already_present(str(build_dir))

        if not ctx.invoker.dry_run:
            build_dir.mkdir(parents=True, exist_ok=True)

        config = self.config or BuildConfiguration(install_prefix=ctx.settings.install_prefix)
        python = await probe_python(ctx.invoker)
        flags = cmake_flags(
            self.profile.cmake_flags,
            config,
            python,
            ctx.settings.work_dir / self.profile.contrib_dir / "modules",
        )
        _logging.debug(f"cmake flags: {flags}")

        ctx.reporter.info("Configuring cmake...")
        await ctx.invoker.invoke(
            ["cmake", *flags, ".."],
            cwd=build_dir,
            timeout=ctx.settings.timeouts.build,
            stream=True,
        )
        return StepOutcome.success()

    async def compile(self, ctx: TaskContext) -> StepOutcome:
        if self.already_built:
            ctx.reporter.success("OpenCV has already been built. Skipping compilation.")
            return StepOutcome.already_present()

        ctx.reporter.info(f"Compiling with make -j{ctx.settings.jobs}...")
        await ctx.invoker.invoke(
            ["make", f"-j{ctx.settings.jobs}"],
            cwd=self.build_dir(ctx),
            timeout=ctx.settings.timeouts.build,
            stream=True,
        )
        return StepOutcome.success()

    async def install(self, ctx: TaskContext) -> StepOutcome:
        version = await installed_opencv_version(ctx.invoker)
        if version:
            ctx.reporter.success(f"OpenCV is already installed (version {version}).")
            return StepOutcome.already_present(version)

        if not ctx.decisions.resolve(INSTALL_OPENCV):
            ctx.reporter.warn("OpenCV installation skipped. Run 'sudo make install' in the build directory later.")
            return StepOutcome.skipped()

        ctx.reporter.info("Installing OpenCV system-wide...")
        await ctx.invoker.invoke(
            ["make", "install"],
            cwd=self.build_dir(ctx),
            timeout=ctx.settings.timeouts.build,
            privileged=True,
            stream=True,
        )
        await ctx.invoker.invoke(["ldconfig"], privileged=True)
        ctx.reporter.success("OpenCV installed successfully!")
        return StepOutcome.success()

    async def verify(self, ctx: TaskContext) -> StepOutcome:
        build_dir = self.build_dir(ctx)
        if not build_dir.is_dir():
            return StepOutcome.failed(f"OpenCV build directory not found: {build_dir}")

        ctx.reporter.info("Checking build artifacts...")
        missing = missing_artifacts(build_dir)
        if missing:
            ctx.reporter.error(f"Some build files are missing: {', '.join(missing)}")

        if (build_dir / "bin" / "opencv_test_core").is_file():
            ctx.reporter.info("opencv_test_core is available in bin/.")
        else:
            ctx.reporter.warn("opencv_test_core binary not found. Test skipped.")

        version = await installed_opencv_version(ctx.invoker)
        if version:
            ctx.reporter.success(f"OpenCV is installed (version {version}).")
        else:
            ctx.reporter.warn("OpenCV is NOT installed system-wide.")

        if missing:
            return StepOutcome.failed(f"missing build artifacts: {', '.join(missing)}")
        return StepOutcome.success()


__all__ = [
    "BuildConfiguration",
    "PythonPaths",
    "OpenCVTask",
    "cmake_flags",
    "probe_python",
    "installed_opencv_version",
    "missing_artifacts",
]
