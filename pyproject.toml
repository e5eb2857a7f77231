[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "signalcrate"
version = "0.1.0"
description = "Modular synthesizer building blocks: oscillators, noise, filters, effects, a WAV player, a script box with a scheduler, OSC control and a curses console."
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "synthesizer",
    "modular",
    "dsp",
    "audio",
    "osc",
    "filter",
    "oscillator",
    "curses",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: End Users/Desktop",
    "Environment :: Console :: Curses",
    "Operating System :: POSIX",
    "Operating System :: MacOS",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio :: Sound Synthesis",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["signalcrate"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
