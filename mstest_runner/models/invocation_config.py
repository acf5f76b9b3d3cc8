"""
Invocation Config Model
Per build-step MSTest settings as entered in the job configuration.

Blank result_file / test_files are accepted here; the builder reports them
as fatal step failures so they land in the build log.
"""
from typing import Optional

from pydantic import BaseModel


class InvocationConfig(BaseModel):
    mstest_name: Optional[str] = None       # Installation name; None → mstest.exe on PATH
    test_files: str = ""                    # Whitespace separated test containers
    categories: Optional[str] = None        # MSTest category filter expression
    result_file: str = ""                   # .trx report path
    cmd_line_args: Optional[str] = None     # Extra arguments, may span lines
