import pathlib

from setuptools import find_packages
from setuptools import setup

install_requires = [
    "jinja2",
    "rich >= 11.2.0",
]
docs_requires = [
    "bump2version",
    "sphinx",
    "furo",
    "sphinx-argparse",
]

lint_requires = [
    "black",
    "flake8",
    "isort",
    "mypy",
]

test_requires = [
    "pytest",
    "pytest-cov",
]

about = {}
with open("src/heapgraph/_version.py") as fp:
    exec(fp.read(), about)


HERE = pathlib.Path(__file__).parent.resolve()
LONG_DESCRIPTION = (HERE / "README.md").read_text(encoding="utf-8")

setup(
    name="heapgraph",
    version=about["__version__"],
    python_requires=">=3.8.0",
    description="Call graph viewer for sampled heap profiles",
    long_description=LONG_DESCRIPTION,
    long_description_content_type="text/markdown",
    classifiers=[
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: POSIX :: Linux",
        "Operating System :: MacOS",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Debuggers",
    ],
    license="Apache 2.0",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    package_data={"heapgraph.reporters": ["templates/*.html"]},
    install_requires=install_requires,
    extras_require={
        "test": test_requires,
        "docs": docs_requires,
        "lint": lint_requires,
        "dev": test_requires + lint_requires + docs_requires,
    },
    entry_points={
        "console_scripts": [
            "heapgraph=heapgraph.__main__:main",
        ],
    },
)
