"""
Exception types raised by molstruct.
"""


class MalformedInputError(ValueError):
  """Raised when a structure file is missing a structurally required field
  (counts line, section, atom/bond block) or one of those fields is not a number.
  """


class InvalidArityError(ValueError):
  """Raised when a measurement is requested with the wrong number of atoms for its kind."""


class NotFoundError(LookupError):
  """Raised when a remote structure lookup resolves to nothing."""


class TransportError(ConnectionError):
  """Raised when a remote structure lookup fails at the network or HTTP level.

  Callers may retry on this error, unlike :obj:`NotFoundError`.
  """
