"""Setup script for Biomorph Growth."""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="biomorph-growth",
    version="0.1.0",
    author="Biomorph Growth Developers",
    description="Biomorphic growth and force-driven adaptation of 3D branching structures",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["morphogen", "morphogen.*", "morph_policies", "morph_policies.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Scientific/Engineering :: Artificial Life",
        "Topic :: Multimedia :: Graphics :: 3D Modeling",
    ],
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.20.0",
        "scipy>=1.7.0",
        "networkx>=2.6.0",
        "tqdm>=4.60.0",
    ],
    extras_require={
        "dev": ["pytest>=7.0.0", "pytest-cov>=4.0.0"],
        "all": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
        ],
    },
)
