"""Command-line tools for docqa.

- ``python -m docqa.cli`` -- ingest, list, ask and delete (see manage.py).

Heavy imports (provider SDKs, ChromaDB) are deferred until a command runs,
so ``--help`` stays fast.
"""
