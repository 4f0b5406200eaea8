[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "counterbench"
version = "0.1.0"
description = "Cycle-level simulation of an 8-bit counter with VCD tracing and a Vbuddy serial front panel"
requires-python = ">=3.10"
keywords = ["simulation", "counter", "vcd", "testbench", "vbuddy", "serial"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Education",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: POSIX",
    "Topic :: Scientific/Engineering :: Electronic Design Automation (EDA)",
]
dependencies = [
    "pyserial",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
counterbench = "counterbench.testbench:main"

[tool.hatch.build.targets.wheel]
packages = ["counterbench"]

[tool.pytest.ini_options]
addopts = "-ra"
