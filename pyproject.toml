[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vmebus"
version = "2.12.0"
description = "Simulated VME bus access: MMIO helpers, address-space bookkeeping, CR/CSR probing and diagnostic shell commands"
requires-python = ">=3.10"
dependencies = []
keywords = ["vme", "vme64x", "csr", "mmio", "bus", "simulation"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Hardware",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["vmebus"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
