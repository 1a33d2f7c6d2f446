from setuptools import setup, find_packages

setup(
    name="ttml-lyrics",
    version="0.1.0",
    description="Parse Apple Music / AMLL flavoured TTML lyrics into a timing-accurate lyric model",
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    python_requires=">=3.10",
    license="GPL-3.0-only",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"ttml_lyrics": ["py.typed"]},
    install_requires=[
        "lxml",
        "typer",
    ],
    extras_require={
        "dev": [
            "pytest",
            "black",
            "ruff",
            "mypy",
        ]
    },
    entry_points={
        "console_scripts": [
            "ttml-lyrics=ttml_lyrics.cli:main",
        ]
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: GNU General Public License v3 (GPLv3)",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio",
        "Topic :: Text Processing :: Markup :: XML",
    ],
    keywords="lyrics ttml apple-music karaoke ruby romanization",
)
