""" Enumerations.
"""
import numpy as np

from enum import Enum

from .errors import InvalidArgumentError, OrderNotImplementedError



class Order(Enum):
    """
    Highest order of the statistical moments collected by an accumulator.

    Only the first two orders are supported, higher central moments are
    rejected as soon as they are requested.
    """

    MEAN = 1
    VARIANCE = 2


    @classmethod
    def of(cls, order: 'int|Order') -> 'Order':
        """
        Convert an integer order into an `Order`.

        Parameters
        ----------
        order : int or Order
            Requested order, `1` for the mean only, `2` for the mean and the
            sum of squared deviations.

        Returns
        -------
        : Order
            The corresponding order.

        Raises
        ------
        InvalidArgumentError
            If `order` is not an integer or is smaller than 1.
        OrderNotImplementedError
            If `order` is greater than 2.
        """
        if isinstance(order, cls):
            return order
        if isinstance(order, bool) or not isinstance(order, (int, np.integer)):
            raise InvalidArgumentError(f'Order must be an integer, got {order!r}')
        if order < 1:
            raise InvalidArgumentError(f'Order must be at least 1, got {order}')
        if order > 2:
            raise OrderNotImplementedError(
                f'Statistical moments of order higher than 2 not yet implemented (requested {order})'
            )
        return cls(int(order))


    def has_variance(self) -> bool:
        """
        Check if the second moment is collected.

        Returns
        -------
        : bool
            True if the order is at least 2, False otherwise.
        """
        return self == Order.VARIANCE
