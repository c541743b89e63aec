"""Command line client for the tag history service.

The Typer application is ``cli.app.app``, installed as ``tag-history``.
"""
