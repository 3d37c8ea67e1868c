""" Exceptions.
"""



class MomentsError(Exception):
    """
    Base class of all the errors raised by this package.
    """



class ShapeMismatchError(MomentsError, ValueError):
    """
    Operands (arrays, samples or accumulators) do not share the same shape.
    """



class InvalidArgumentError(MomentsError, ValueError):
    """
    Invalid argument, e.g. a negative number of samples or an order that
    does not match the number of storage arrays.
    """



class NotAvailableError(MomentsError, RuntimeError):
    """
    The requested statistic is not collected by the accumulator.
    """



class InsufficientSamplesError(MomentsError, ValueError):
    """
    Not enough samples to compute the requested statistic.
    """



class OrderNotImplementedError(MomentsError, NotImplementedError):
    """
    Statistical moments of order higher than 2 are not supported.
    """



class InternalInconsistencyError(MomentsError, AssertionError):
    """
    The internal state of an accumulator is corrupted.
    """
