[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "x86desc"
version = "0.1.0"
description = "Build and inspect x86-64 descriptor tables: GDT, IDT, segment descriptors and exception codes."
requires-python = ">=3.10"
dependencies = []
keywords = ["x86_64", "amd64", "gdt", "idt", "descriptor", "interrupt", "segmentation"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Embedded Systems",
]

[project.optional-dependencies]
test = [
    "pytest",
    "hypothesis",
]

[tool.hatch.build.targets.wheel]
packages = ["x86desc"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
