from setuptools import setup

setup(
    package_dir={"": "src"},  # needed for CI
    # these two are defined in pyproject.toml
    # but added here for the sake of github:
    # See: https://github.com/github/feedback/discussions/6456
    name="callgate",
    install_requires=["typing-extensions >=4.5"],
)
