import setuptools

exec(open("SAM/_version.py", "r").read())

with open("README.md", "r") as fh:
    long_description = fh.read()

pkg_name = "i2psam"
requirements = ['configobj>=5.0.6']
test_requirements = ['pytest>=7.0']

setuptools.setup(
    name=pkg_name,
    version=__version__,
    description="Client library for the I2P SAM v3 protocol, with sessions, streams, datagrams and name lookups",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
    entry_points= {
        'console_scripts': [
            'samlookup=SAM.Utilities.samlookup:main',
        ]
    },
    install_requires=requirements,
    extras_require={
        'test': test_requirements,
    },
    python_requires='>=3.7',
)
