[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tubesync"
version = "0.1.0"
description = "Building blocks for audio-reactive ESP-NOW LED tubes: beat detection on spectrum regions, bandpass filtering, presets, raw frame transport and an HTTP control endpoint"
requires-python = ">=3.10"
keywords = [
    "audio",
    "beat-detection",
    "led",
    "esp-now",
    "lighting",
    "biquad",
    "mdns",
    "ota",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: End Users/Desktop",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio :: Analysis",
    "Topic :: System :: Networking",
]
dependencies = [
    "dnspython",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
tubesync = "tubesync.server:main"

[tool.hatch.build.targets.wheel]
packages = ["tubesync"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
