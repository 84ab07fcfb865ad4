"""Setup configuration for pedestrian_crossing package."""

from setuptools import setup, find_packages
from pathlib import Path

# Read the contents of README file
ROOT = Path(__file__).parent
README = (ROOT / "README.md").read_text(encoding='utf-8')

setup(
    name="pedestrian_crossing",
    version="0.1.0",
    author="Your Name",
    author_email="your.email@example.com",
    description="Pedestrian actor crossing a road at a marked crossing, yielding to vehicle traffic",
    long_description=README,
    long_description_content_type="text/markdown",
    url="https://github.com/yourusername/pedestrian_crossing",
    packages=find_packages(include=["pedestrian_crossing", "pedestrian_crossing.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.23.0",
        "matplotlib>=3.5.0",
        "pyyaml>=6.0",
        "loguru>=0.7.0",
        "shapely>=2.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=3.0.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.0.0",
        ],
        "viz": [
            "pillow>=9.0.0",
        ],
    },
)
