class KoskError(Exception):
    """
    Base class for all koskbls errors.

    This exception serves as the root of the koskbls error hierarchy.
    Verification routines never raise it; they return False instead.
    """
    pass


class InvalidParameterError(KoskError):
    """
    Raised when a provided parameter is invalid or malformed.

    This indicates that the arguments passed to a method do not meet
    the expected criteria or format, e.g. an empty signature list.
    """
    pass


class InvalidScalarError(KoskError, ValueError):
    """
    Raised when a secret key is not a scalar in [1, curve_order).
    """
    pass


class DecodingError(KoskError, ValueError):
    """
    Raised when bytes cannot be decoded into a valid curve point.

    Examples include a wrong length, a missing compression flag, or
    coordinates that do not satisfy the curve equation.
    """
    pass


class UnknownCurveError(KoskError):
    """
    Raised when a curve system is requested by a name that is not supported.
    """
    pass


class AuthenticationError(KoskError):
    """
    Raised when a public key is presented with an authentication that
    does not prove knowledge of its secret key.
    """
    pass


class UnauthorizedError(KoskError):
    """
    Raised when a contribution comes from a public key that was never
    admitted to the key registry.
    """
    pass


class InvalidSignatureError(KoskError):
    """
    Raised when a signature contribution does not verify.

    Attributes:
        public_key: Optional encoded public key the signature was
                    attributed to.
    """

    def __init__(self, message: str, public_key: bytes | None = None):
        """
        Initialize an InvalidSignatureError.

        Args:
            message: Description of the error.
            public_key: Optional encoded public key for reference.
        """
        super().__init__(message)
        self.public_key = public_key
