"""
Remote Module: Executor protocol, page model and the SimpleDB executor.
"""

from itemmesh.remote.protocol import Page, RemoteExecutor, Row
from itemmesh.remote.simpledb import SimpleDBExecutor

__all__ = [
    "Page",
    "RemoteExecutor",
    "Row",
    "SimpleDBExecutor",
]
