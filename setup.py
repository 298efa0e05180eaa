""" btcscript build script for setuptools.

"""

from setuptools import find_packages, setup  # type: ignore

import btcscript

with open("README.md", "r", encoding="ascii") as file_:
    longdescription = file_.read()

setup(
    name=btcscript.name,
    version=btcscript.__version__,
    license=btcscript.__license__,
    author=btcscript.__author__,
    author_email=btcscript.__author_email__,
    description="Typed Bitcoin scripts and hash-verified output script resolution",
    long_description=longdescription,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=["pycryptodome"],
    extras_require={"test": ["pytest"]},
    keywords=(
        "bitcoin script scriptPubKey p2sh segwit taproot miniscript "
        "bip341 bip342"
    ),
    python_requires=">=3.8",
    classifiers=[
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Natural Language :: English",
        "Operating System :: OS Independent",
        "Topic :: Security :: Cryptography",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
)
