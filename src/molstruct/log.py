"""
Package wide logger.

Importing any molstruct module imports this one, which attaches a colored
console handler to the ``molstruct`` logger at import time. Use
:obj:`set_verbosity` (or the standard ``logging`` API on
``logging.getLogger("molstruct")``) to quiet it down.
"""

import logging
from typing import Union


### CLASSES ###
class c:
  """Terminal colors class"""

  _ = "\033[0m"  # reset terminal
  p = "\033[38;5;204m"  # pink
  b = "\033[38;5;295m"  # blue
  g = "\033[38;5;47m"  # green
  grey = "\033[90m"  # grey
  r = "\033[38;5;1m"  # red
  br = "\x1b[31;1m"  # boldred
  y = "\033[38;5;226m"  # yellow


class CustomLogger(logging.Formatter):
  """Formatter used by the ``molstruct`` logger.

  NOTE:
    ``[+] logging.DEBUG``: Per-call detail, atom/bond counts after each parse,
    number of inferred bonds, every finished minimization chunk, resolved PubChem CIDs

    ``[*] logging.INFO``: A file without explicit bonds falling back to bond
    inference, the start of a PubChem search, energies before and after :obj:`molstruct.mechanics.relax`

    ``[-] logging.WARNING``: Input that was dropped or replaced, skipped CONECT
    records, short MOL2 lines, malformed ``M  CHG`` lines, MOL2 atom count
    mismatches, PubChem 3D records missing, elements RDKit does not know

    ``[!] logging.ERROR`` / ``logging.CRITICAL``: Not emitted by molstruct itself, errors are raised instead
  """

  log_format_detailed = f"{c.grey}%(asctime)s{c._} %(message)s {c.p}(%(filename)s:%(lineno)d){c._}"
  log_format_basic = "%(message)s"

  FORMATS = {
    logging.DEBUG: f"{c.g}[+]{c._} {log_format_basic}",
    logging.INFO: f"{c.b}[*]{c._} {log_format_basic}",
    logging.WARNING: f"{c.y}[-]{c._} {log_format_detailed}",
    logging.ERROR: f"{c.r}[!]{c._} {log_format_detailed}",
    logging.CRITICAL: f"{c.br}[!]{c._} {log_format_detailed}",
  }
  """:meta private:"""

  def format(self, record):
    log_fmt = self.FORMATS.get(record.levelno)
    formatter = logging.Formatter(log_fmt)
    return formatter.format(record)


logger = logging.getLogger("molstruct")
logger.setLevel(logging.DEBUG)

# console handler, attached once even if this module is reloaded
if not any(isinstance(h, logging.StreamHandler) and isinstance(h.formatter, CustomLogger) for h in logger.handlers):
  ch = logging.StreamHandler()
  ch.setLevel(logging.DEBUG)
  ch.setFormatter(CustomLogger())
  logger.addHandler(ch)


### FUNCTIONS ###
def set_verbosity(level: Union[int, str]):
  """Set the level of the ``molstruct`` logger.

  Parameters:
    level: A ``logging`` level such as ``logging.WARNING`` or its name, e.g. ``"warning"``

  Raises:
    ValueError: If ``level`` is an unknown level name

  """
  if isinstance(level, str):
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
      raise ValueError(f'Unknown logging level "{level}"')
    level = value
  logger.setLevel(level)
