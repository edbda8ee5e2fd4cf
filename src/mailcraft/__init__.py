"""mailcraft: compose email messages and hand them to SMTP.

Examples:
    >>> import mailcraft
    >>> mailcraft.__version__ == mailcraft.meta.__version__
    True
"""

from mailcraft import meta
from mailcraft.mail import Email, SimpleEmail
from mailcraft.meta import __version__

__all__ = ["Email", "SimpleEmail", "__version__", "meta"]
