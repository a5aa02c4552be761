from setuptools import setup

with open("README.md") as f:
    readme = f.read()

_ = setup(
    name="certexport-ad",
    version="1.0.0",
    license="MIT",
    long_description=readme,
    long_description_content_type="text/markdown",
    python_requires=">=3.8",
    install_requires=[
        "argcomplete>=3.0",
        "asn1crypto~=1.5.1",
        "cryptography>=42.0.8",
        "impacket~=0.12.0",
        "ldap3~=2.9.1",
        "dnspython~=2.7.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    packages=[
        "certexport",
        "certexport.commands",
        "certexport.commands.parsers",
        "certexport.lib",
    ],
    entry_points={
        "console_scripts": ["certexport=certexport.entry:main"],
    },
    description="Export the certificates published on Active Directory users",
)
