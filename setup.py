# setup.py
from __future__ import annotations

from setuptools import find_namespace_packages, setup

setup(
    name="grvthumb",
    version="0.1.0",
    description="ThumbHash image placeholders: codec, previews and an upload pipeline",
    license="GPL-3.0-or-later",
    python_requires=">=3.10",
    packages=find_namespace_packages(include=["grvthumb", "grvthumb.*"]),
    install_requires=[
        "numpy",
        "Pillow",
    ],
    extras_require={
        "test": ["pytest", "pytest-benchmark"],
    },
    entry_points={
        "console_scripts": ["grvthumb=grvthumb.__main__:main"],
    },
)
