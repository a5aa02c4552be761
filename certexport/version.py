# Initialize version as unknown
version = "?"

try:
    from importlib.metadata import PackageNotFoundError
    from importlib.metadata import version as get_version

    version = get_version("certexport-ad")
except PackageNotFoundError:
    print(
        "Cannot determine certexport version. "
        'If running from source you should at least run "pip install -e ."'
    )

BANNER = "certexport v{} - Active Directory user certificate export\n".format(version)
