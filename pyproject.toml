[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "elmcore"
version = "1.24.0"
description = "ELM327-compatible OBD-II command interpreter core: AT command dispatch, configuration, message framing and protocol selection"
requires-python = ">=3.10"
dependencies = []
keywords = ["obd", "obd-ii", "elm327", "can", "j1939", "j1850", "iso9141", "iso14230", "automotive", "diagnostics"]
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
    "Topic :: Scientific/Engineering :: Interface Engine/Protocol Translator",
    "Topic :: Software Development :: Embedded Systems",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
elmcore = "elmcore.interpreter:main"

[tool.hatch.build.targets.wheel]
packages = ["elmcore"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
