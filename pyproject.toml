[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kmodadapt"
version = "0.1.0"
description = "Adapt a Linux kernel module's symbol CRCs and vermagic string to a target kernel"
requires-python = ">=3.10"
dependencies = []
keywords = ["linux", "kernel", "module", "elf", "modversions", "vermagic", "Module.symvers"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Operating System Kernels :: Linux",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
kmodadapt = "kmodadapt.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["kmodadapt"]

[tool.pytest.ini_options]
addopts = "-ra"
