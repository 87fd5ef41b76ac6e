"""CLI package for talking to a running mattori_home service.

The Typer application lives in ``cli.app``; it is not re-exported here so that
``cli.app`` keeps resolving to the module that tests patch.
"""
