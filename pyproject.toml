[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rtmplive"
version = "0.1.0"
description = "Building blocks for a live streaming server: RTMP chunking and handshake, GOP caching, HTTP-FLV and HLS delivery."
requires-python = ">=3.10"
dependencies = []
keywords = ["rtmp", "flv", "hls", "live-streaming", "m3u8", "video"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Video",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rtmplive"]

[tool.pytest.ini_options]
addopts = "-ra"
