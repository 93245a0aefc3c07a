__title__ = 'helmsman'
__author__ = 'Helmsman Contributors'
__license__ = 'MIT'
# Placeholder, modified by dynamic-versioning.
__version__ = "0.0.0"

from .utils import *
from .arguments import *
from .commands import *
from .faults import *
from .services import *
from .context import *
from .runner import *
from .printer import *
from .builtins import *
from .configuration import ConfigurationError
from .cli import *

VersionInfo = __import__("collections").namedtuple("VersionInfo", (
    "major",
    "minor",
    "micro",
    "releaselevel",
    "serial",
    "metadata"
))

# Placeholder, modified by dynamic-versioning.
version_info = VersionInfo(0, 0, 0, "final", 0, "")

__all__ = (
    "__title__",
    "__author__",
    "__license__",
    "__version__",
    "version_info",
    "ConfigurationError",
)

# Load the exposed API of the utilities
__all__ += utils.__all__  # type: ignore[attr-defined]
# Load the exposed API of the arguments
__all__ += arguments.__all__  # type: ignore[attr-defined]
# Load the exposed API of the commands
__all__ += commands.__all__  # type: ignore[attr-defined]
# Load the exposed API of the faults
__all__ += faults.__all__  # type: ignore[attr-defined]
# Load the exposed API of the services
__all__ += services.__all__  # type: ignore[attr-defined]
# Load the exposed API of the context
__all__ += context.__all__  # type: ignore[attr-defined]
# Load the exposed API of the runner
__all__ += runner.__all__  # type: ignore[attr-defined]
# Load the exposed API of the printer
__all__ += printer.__all__  # type: ignore[attr-defined]
# Load the exposed API of the built-in commands
__all__ += builtins.__all__  # type: ignore[attr-defined]
# Load the exposed API of the host shell
__all__ += cli.__all__  # type: ignore[attr-defined]
