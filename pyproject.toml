[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rtpmedia"
version = "0.1.0"
description = "RTP header extension payloads and codec payloaders/depacketizers for AV1, H.264, H.265, VP8, VP9, Opus, G.711 and G.722"
requires-python = ">=3.10"
dependencies = []
keywords = ["rtp", "webrtc", "h264", "h265", "hevc", "vp8", "vp9", "av1", "opus", "g711", "g722", "packetizer"]
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
    "Topic :: Multimedia :: Video",
    "Topic :: Multimedia :: Sound/Audio",
    "Topic :: Communications :: Conferencing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rtpmedia"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
strict = true
