"""
Constants
Fixed MSTest command-line flags and platform wrapping tokens.
"""
DEFAULT_EXECUTABLE = "mstest.exe"

RESULTS_FILE_FLAG = "/resultsfile:"
NO_ISOLATION_FLAG = "/noisolation"
CATEGORY_FLAG = "/category:"
TEST_CONTAINER_FLAG = "/testcontainer:"

# Non-Unix nodes run the command through the interpreter so its exit code
# is the wrapped program's exit code.
WINDOWS_SHELL_PREFIX = ("cmd.exe", "/C")
WINDOWS_EXIT_SUFFIX = ("&&", "exit", "%ERRORLEVEL%")
