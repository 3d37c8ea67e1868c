""" On-line estimation of the mean and variance of multi-dimensional samples.
"""
from .enums import Order
from .errors import (
    InsufficientSamplesError,
    InternalInconsistencyError,
    InvalidArgumentError,
    MomentsError,
    NotAvailableError,
    OrderNotImplementedError,
    ShapeMismatchError,
)
from .stats import MomentAccumulator, combine
