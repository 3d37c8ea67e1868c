""" Utility module for collecting statistical moments on-line.
"""
import numpy as np

from functools import reduce
from typing import Callable, Iterable, Sequence, Tuple

from .enums import Order
from .errors import (
    InsufficientSamplesError,
    InternalInconsistencyError,
    InvalidArgumentError,
    NotAvailableError,
    OrderNotImplementedError,
    ShapeMismatchError,
)
from .utils.common import have_same_shape, same_shape, to_floating_dtype, to_position, to_shape



class MomentAccumulator:
    """
    Collects the first statistical moments of independent, equally-shaped
    samples in a single pass, without retaining the samples.

    Each position of the samples is treated as an independent univariate
    stream. Two arrays of the same shape as the samples are maintained:
    the element-wise empirical mean and, if the order is 2, the element-wise
    sum of squared deviations from that mean. Given samples `x_1, ..., x_n`:

        s1[i] = (x_1[i] + ... + x_n[i]) / n
        s2[i] = (x_1[i] - s1[i])**2 + ... + (x_n[i] - s1[i])**2

    Samples are integrated with the recurrence of Welford (1962), statistics
    collected by another accumulator with the formulae of Chan, Golub and
    LeVeque (1979). Both avoid the loss of precision of the naive sums.

    The accumulator is a plain mutable object without any locking: at most
    one writer at a time. The intended parallel pattern is one private
    accumulator per worker, combined afterwards with `merge`.

    Attributes
    ----------
    order : int
        Highest order of the collected moments, 1 (mean) or 2 (mean and variance).
    nobs : int
        Number of samples collected so far.
    dtype : np.dtype
        Floating-point type of the collected statistics.
    shape : tuple of int
        Shape of a data sample.

    References
    ----------
    - Welford, B. P. (1962). Note on a method for calculating
    corrected sums of squares and products. Technometrics, 4(3), 419-420.
    - Chan, T. F., Golub, G. H., & LeVeque, R. J. (1979). Updating formulae
    and a pairwise algorithm for computing sample variances.
    Technical Report STAN-CS-79-773, Stanford University.
    """

    def __init__(
        self,
        shape: int|Tuple[int, ...],
        order: int|Order = Order.VARIANCE,
        dtype: np.dtype|type|str = np.float64
    ):
        """
        Parameters
        ----------
        shape : int or tuple of ints
            Shape of a data sample.
        order : int or Order, default=Order.VARIANCE
            Highest order of the moments to collect, 1 or 2.
        dtype : np.dtype or type or str, default=np.float64
            Floating-point type of the stored statistics.

        Raises
        ------
        InvalidArgumentError
            If the shape, the order or the data type is invalid.
        OrderNotImplementedError
            If `order` is greater than 2.
        """
        order = Order.of(order)
        dtype = to_floating_dtype(dtype)
        shape = to_shape(shape)

        self._order = order
        """Highest order of the collected moments."""
        self._moments = tuple(np.zeros(shape, dtype=dtype) for _ in range(order.value))
        """Storage arrays, the mean followed by the sum of squared deviations."""
        self._n = 0
        """Number of samples collected so far."""
        return


    @classmethod
    def from_shape(
        cls,
        order: int|Order,
        dtype: np.dtype|type|str,
        shape: int|Tuple[int, ...]
    ) -> 'MomentAccumulator':
        """
        Create an empty accumulator with zero-filled storage.

        Parameters
        ----------
        order : int or Order
            Highest order of the moments to collect, 1 or 2.
        dtype : np.dtype or type or str
            Floating-point type of the stored statistics.
        shape : int or tuple of ints
            Shape of a data sample.

        Returns
        -------
        : MomentAccumulator
            A new accumulator with no samples.
        """
        return cls(shape, order=order, dtype=dtype)


    @classmethod
    def from_moments(
        cls,
        arrays: Sequence[np.ndarray],
        count: int|None = None,
        order: int|Order|None = None
    ) -> 'MomentAccumulator':
        """
        Create an accumulator using the given arrays as storage.

        The arrays are used in place, not copied. If `count` is given, they
        must already hold the moments of `count` samples (see the class
        documentation); they are not checked numerically. Otherwise, or if
        `count` is 0, they are zero-filled and the accumulator is empty.

        Parameters
        ----------
        arrays : sequence of np.ndarray
            The mean followed, optionally, by the sum of squared deviations.
            All the arrays must have the same shape and floating-point type.
        count : int or None, default=None
            Number of samples already collected in `arrays`.
        order : int or Order or None, default=None
            Expected order, checked against the number of arrays.

        Returns
        -------
        : MomentAccumulator
            The new accumulator.

        Raises
        ------
        ShapeMismatchError
            If the arrays do not share the same shape and data type.
        InvalidArgumentError
            If `count` is negative, if the arrays are not writable floating-point
            NumPy arrays, or if `order` does not match the number of arrays.
        OrderNotImplementedError
            If more than 2 arrays are given.
        """
        arrays = tuple(arrays)

        if len(arrays) == 0:
            raise InvalidArgumentError('At least one storage array is needed')
        if order is not None:
            expected = order.value if isinstance(order, Order) else order
            if expected != len(arrays):
                raise InvalidArgumentError(f'Order {expected} does not match the {len(arrays)} storage arrays')
        resolved = Order.of(len(arrays))

        for arr in arrays:
            if not isinstance(arr, np.ndarray):
                raise InvalidArgumentError(f'Storage must be NumPy arrays, got {type(arr).__name__}')
            if not arr.flags.writeable:
                raise InvalidArgumentError('Storage arrays must be writable')
        same_shape(*arrays)
        if any(arr.dtype != arrays[0].dtype for arr in arrays[1:]):
            raise ShapeMismatchError(f'Storage arrays have different types: {[str(arr.dtype) for arr in arrays]}')
        to_floating_dtype(arrays[0].dtype)
        for i in range(len(arrays)):
            for j in range(i + 1, len(arrays)):
                if np.may_share_memory(arrays[i], arrays[j]):
                    raise InvalidArgumentError('Storage arrays must not overlap')

        if count is not None:
            if isinstance(count, bool) or not isinstance(count, (int, np.integer)):
                raise InvalidArgumentError(f'Number of samples must be an integer, got {count!r}')
            if count < 0:
                raise InvalidArgumentError(f'Bad number of samples: {count}')

        acc = cls._from_storage(resolved, arrays, 0 if count is None else int(count))
        if acc._n == 0:
            acc.clear()
        return acc


    @classmethod
    def from_samples(
        cls,
        samples: Iterable[np.ndarray],
        order: int|Order = Order.VARIANCE,
        dtype: np.dtype|type|str = np.float64
    ) -> 'MomentAccumulator':
        """
        Create an accumulator from an iterable of samples.

        The shape of the samples is taken from the first one.

        Parameters
        ----------
        samples : iterable of np.ndarray
            Non-empty iterable of equally-shaped samples.
        order : int or Order, default=Order.VARIANCE
            Highest order of the moments to collect, 1 or 2.
        dtype : np.dtype or type or str, default=np.float64
            Floating-point type of the stored statistics.

        Returns
        -------
        : MomentAccumulator
            An accumulator holding the statistics of all the samples.

        Raises
        ------
        InvalidArgumentError
            If `samples` is empty.
        ShapeMismatchError
            If the samples do not all have the same shape.
        """
        iterator = iter(samples)
        try:
            first = np.asarray(next(iterator))
        except StopIteration:
            raise InvalidArgumentError('Cannot infer the shape of the samples from an empty iterable') from None

        acc = cls(first.shape, order=order, dtype=dtype)
        acc.push(first)
        acc.update(iterator)
        return acc


    @classmethod
    def _from_storage(cls, order: Order, moments: Tuple[np.ndarray, ...], n: int) -> 'MomentAccumulator':
        acc = cls.__new__(cls)
        acc._order = order
        acc._moments = moments
        acc._n = n
        return acc


    @property
    def order(self) -> int:
        """Highest order of the collected moments."""
        return self._order.value


    @property
    def nobs(self) -> int:
        """Number of samples."""
        return self._n


    @property
    def dtype(self) -> np.dtype:
        """Floating-point type of the statistics."""
        return self._moments[0].dtype


    @property
    def shape(self) -> Tuple[int, ...]:
        """Shape of a data sample."""
        return self._moments[0].shape


    @property
    def ndim(self) -> int:
        """Number of dimensions of a data sample."""
        return self._moments[0].ndim


    @property
    def size(self) -> int:
        """Number of elements of a data sample."""
        return self._moments[0].size


    @property
    def axes(self) -> Tuple[range, ...]:
        """Valid indices along each dimension of a data sample."""
        return tuple(range(dim) for dim in self.shape)


    @property
    def moments(self) -> Tuple[np.ndarray, ...]:
        """Read-only views of the storage arrays."""
        return tuple(_readonly(arr) for arr in self._moments)


    def storage(self, k: int) -> np.ndarray:
        """
        Get a read-only view of the `k`-th storage array.

        Parameters
        ----------
        k : int
            Order of the moment, 1 for the mean and 2 for the sum of squared deviations.

        Returns
        -------
        : np.ndarray
            The storage array.

        Raises
        ------
        InvalidArgumentError
            If `k` is not between 1 and the order of the accumulator.
        """
        if isinstance(k, bool) or not isinstance(k, (int, np.integer)) or not 1 <= k <= len(self._moments):
            raise InvalidArgumentError(f'Storage index must be between 1 and {len(self._moments)}, got {k!r}')
        return _readonly(self._moments[k - 1])


    def clear(self) -> 'MomentAccumulator':
        """
        Forget all the collected statistics.

        Returns
        -------
        : MomentAccumulator
            This accumulator.
        """
        for arr in self._moments:
            arr.fill(0)
        self._n = 0
        return self


    def copy(self) -> 'MomentAccumulator':
        """
        Get an independent copy of this accumulator.

        Returns
        -------
        : MomentAccumulator
            A new accumulator with its own storage.
        """
        return self._from_storage(self._order, tuple(arr.copy() for arr in self._moments), self._n)


    def copy_from(self, other: 'MomentAccumulator') -> 'MomentAccumulator':
        """
        Replace the statistics of this accumulator with those of `other`.

        This is not a statistical combination, the previous content is lost.

        Parameters
        ----------
        other : MomentAccumulator
            Accumulator with the same order and shape. Its values are
            converted to the data type of this accumulator.

        Returns
        -------
        : MomentAccumulator
            This accumulator.

        Raises
        ------
        ShapeMismatchError
            If the order or the shape of `other` differs.
        """
        self._check_operand(other)
        self._check_state()
        other._check_state()
        self._assign(other)
        return self


    def push(self, *samples: np.ndarray) -> 'MomentAccumulator':
        """
        Integrate new samples.

        Samples are integrated in the given order. All of them are checked
        before the first is integrated.

        Parameters
        ----------
        *samples : np.ndarray
            Real-valued arrays with the same shape as the accumulator.

        Returns
        -------
        : MomentAccumulator
            This accumulator.

        Raises
        ------
        ShapeMismatchError
            If a sample has the wrong shape.
        InvalidArgumentError
            If a sample is not real-valued.
        """
        self._check_state()
        checked = [self._check_sample(x) for x in samples]
        for x in checked:
            self._push(x)
        return self


    def update(self, samples: Iterable[np.ndarray]) -> 'MomentAccumulator':
        """
        Integrate all the samples yielded by an iterable.

        This is equivalent to pushing the samples one by one. The iterable is
        consumed once, so it can be a stream, and a stacked array of shape
        `(n_samples,) + shape` is integrated along its first axis.
        If any sample is invalid, the accumulator is left unchanged.

        Parameters
        ----------
        samples : iterable of np.ndarray
            Real-valued arrays with the same shape as the accumulator.

        Returns
        -------
        : MomentAccumulator
            This accumulator.

        Raises
        ------
        ShapeMismatchError
            If a sample has the wrong shape.
        InvalidArgumentError
            If a sample is not real-valued.
        """
        self._check_state()
        scratch = self.copy()
        for x in samples:
            scratch._push(scratch._check_sample(x))
        self._assign(scratch)
        return self


    def merge(self, other: 'MomentAccumulator') -> 'MomentAccumulator':
        """
        Combine the statistics collected by `other` into this accumulator.

        The result is, up to rounding errors, the same as if all the samples
        of `other` had been pushed here. `other` is left unchanged.
        The computations are carried out in the data type of this accumulator.

        Parameters
        ----------
        other : MomentAccumulator
            Accumulator with the same order and shape.

        Returns
        -------
        : MomentAccumulator
            This accumulator.

        Raises
        ------
        ShapeMismatchError
            If the order or the shape of `other` differs.
        """
        self._check_operand(other)
        self._check_state()
        other._check_state()

        if self._n == 0:
            # Nothing collected here, just copy the other statistics if any.
            if other._n > 0:
                self._assign(other)
        elif other._n == 1:
            # A single sample is the mean itself.
            self._push(other._moments[0].astype(self.dtype, copy=False))
        elif other._n > 1:
            self._combine(other)
        return self


    def mean(self, index: int|Tuple[int, ...]|None = None) -> np.ndarray|np.floating:
        """
        Get the element-wise sample mean.

        Parameters
        ----------
        index : int or tuple of int or None, default=None
            If None, the whole array is returned. Otherwise, the value at a
            single position, given either as a linear index in C order or
            as a multi-index.

        Returns
        -------
        : np.ndarray or np.floating
            Read-only view of the mean, or its value at `index`.
            All zeros if no samples have been collected.

        Raises
        ------
        InvalidArgumentError
            If `index` is invalid.
        """
        if index is None:
            return _readonly(self._moments[0])
        return self._moments[0][to_position(index, self.shape)]


    def variance(
        self,
        index: int|Tuple[int, ...]|None = None,
        corrected: bool = True,
        out: np.ndarray|None = None
    ) -> np.ndarray|np.floating:
        """
        Get the element-wise sample variance.

        Parameters
        ----------
        index : int or tuple of int or None, default=None
            If None, the whole array is computed. Otherwise, the value at a
            single position, given either as a linear index in C order or
            as a multi-index.
        corrected : bool, default=True
            If True, return the unbiased estimator (dividing by n-1).
            If False, return the maximum-likelihood estimator (dividing by n).
        out : np.ndarray or None, default=None
            Destination array with the shape of the samples.
            Not allowed together with `index`.

        Returns
        -------
        : np.ndarray or np.floating
            The variance, or its value at `index`.

        Raises
        ------
        NotAvailableError
            If the second moment is not collected.
        InsufficientSamplesError
            If `corrected` is True and less than 2 samples have been collected.
        ShapeMismatchError
            If `out` has the wrong shape.
        InvalidArgumentError
            If `index` or `out` is invalid.
        """
        return self._map_variance(None, index, corrected, out)


    def std(
        self,
        index: int|Tuple[int, ...]|None = None,
        corrected: bool = True,
        out: np.ndarray|None = None
    ) -> np.ndarray|np.floating:
        """
        Get the element-wise sample standard deviation.

        This is the square root of `variance` with the same arguments,
        see there for details.
        """
        return self._map_variance(np.sqrt, index, corrected, out)


    def _map_variance(
        self,
        func: Callable|None,
        index: int|Tuple[int, ...]|None,
        corrected: bool,
        out: np.ndarray|None
    ) -> np.ndarray|np.floating:
        if not self._order.has_variance():
            raise NotAvailableError('2nd order statistical moment is not available')
        if index is not None and out is not None:
            raise InvalidArgumentError('Cannot specify both `index` and `out`')

        n = self._n
        if n < 0:
            raise InternalInconsistencyError('Bad number of samples')
        if corrected:
            if n < 2:
                raise InsufficientSamplesError(f'Not enough samples for the corrected estimator: {n}')
            n -= 1

        T = self.dtype.type
        s2 = self._moments[1]

        if index is not None:
            value = s2[to_position(index, self.shape)]
            if n > 1:
                value = value / T(n)
            elif n == 0:
                value = T(0)
            return value if func is None else func(value)

        dst = np.empty(self.shape, dtype=self.dtype) if out is None else self._check_out(out)
        if n > 1:
            np.divide(s2, T(n), out=dst)
        elif n == 1:
            np.copyto(dst, s2, casting='same_kind')
        else:
            dst.fill(0)
        if func is not None:
            func(dst, out=dst)
        return dst


    def _push(self, x: np.ndarray) -> None:
        """
        Integrate a sample, already checked and converted to the data type of the accumulator.
        """
        T = self.dtype.type
        n = self._n
        s1 = self._moments[0]

        if n == 0:
            s1[...] = x
        elif self._order == Order.MEAN:
            w1 = T(1 / (n + 1))
            s1 += w1 * (x - s1)
        elif self._order == Order.VARIANCE:
            s2 = self._moments[1]
            w1 = T(1 / (n + 1))
            wn = T(n / (n + 1))
            # The update of s2 only adds non-negative terms.
            u = x - s1
            s1 += w1 * u
            s2 += wn * (u * u)
        else:
            raise OrderNotImplementedError('Statistical moments of order higher than 2 not yet implemented')

        self._n = n + 1
        return


    def _combine(self, other: 'MomentAccumulator') -> None:
        """
        Combine statistics when both accumulators have samples, at the precision of this one.
        """
        T = self.dtype.type
        na, nb = self._n, other._n
        n = na + nb
        wa = T(na / n)
        wb = T(nb / n)

        s1 = self._moments[0]
        # Copies, `other` may be this accumulator.
        b1 = np.array(other._moments[0], dtype=self.dtype)

        if self._order == Order.MEAN:
            s1 *= wa
            s1 += wb * b1
        elif self._order == Order.VARIANCE:
            s2 = self._moments[1]
            b2 = np.array(other._moments[1], dtype=self.dtype)
            wab = wa * T(nb)
            delta = s1 - b1
            s1 *= wa
            s1 += wb * b1
            s2 += b2
            s2 += wab * (delta * delta)
        else:
            raise OrderNotImplementedError('Statistical moments of order higher than 2 not yet implemented')

        self._n = n
        return


    def _assign(self, other: 'MomentAccumulator') -> None:
        for dst, src in zip(self._moments, other._moments):
            np.copyto(dst, src, casting='same_kind')
        self._n = other._n
        return


    def _check_state(self) -> None:
        """
        Verify the consistency of the internal state.

        Raises
        ------
        InternalInconsistencyError
            If the number of samples is negative or the storage arrays have different shapes.
        """
        if self._n < 0:
            raise InternalInconsistencyError('Bad number of samples')
        if len(self._moments) != self._order.value or not have_same_shape(*self._moments):
            raise InternalInconsistencyError('Storage arrays have different shapes')
        return


    def _check_operand(self, other: 'MomentAccumulator') -> None:
        if not isinstance(other, MomentAccumulator):
            raise InvalidArgumentError(f'Expected a MomentAccumulator, got {type(other).__name__}')
        if other._order != self._order:
            raise ShapeMismatchError(f'Expected statistics of order {self.order}, got {other.order}')
        if other.shape != self.shape:
            raise ShapeMismatchError(f'Expected shape {self.shape}, got {other.shape}')
        return


    def _check_sample(self, x: np.ndarray) -> np.ndarray:
        try:
            x = np.asarray(x)
        except ValueError as e:
            raise InvalidArgumentError(f'Invalid sample: {e}') from e

        if x.shape != self.shape:
            raise ShapeMismatchError(f'Expected shape {self.shape}, got {x.shape}')
        if not (np.issubdtype(x.dtype, np.integer) or np.issubdtype(x.dtype, np.floating) or x.dtype == np.bool_):
            raise InvalidArgumentError(f'Samples must be real-valued, got {x.dtype}')
        return x.astype(self.dtype, copy=False)


    def _check_out(self, out: np.ndarray) -> np.ndarray:
        if not isinstance(out, np.ndarray):
            raise InvalidArgumentError(f'Destination must be a NumPy array, got {type(out).__name__}')
        if out.shape != self.shape:
            raise ShapeMismatchError(f'Expected shape {self.shape}, got {out.shape}')
        if not np.issubdtype(out.dtype, np.floating):
            raise InvalidArgumentError(f'Destination must be a floating-point array, got {out.dtype}')
        if not out.flags.writeable:
            raise InvalidArgumentError('Destination must be writable')
        return out


    def __repr__(self) -> str:
        return f'<MomentAccumulator order={self.order} dtype={self.dtype} shape={self.shape} nobs={self._n}>'



def combine(accumulators: Iterable[MomentAccumulator]) -> MomentAccumulator:
    """
    Combine the statistics of several accumulators into a new one.

    The accumulators are merged from left to right into a copy of the first.
    None of them is modified.

    Parameters
    ----------
    accumulators : iterable of MomentAccumulator
        Non-empty iterable of accumulators with the same order and shape.

    Returns
    -------
    : MomentAccumulator
        A new accumulator, with the data type of the first one.

    Raises
    ------
    InvalidArgumentError
        If `accumulators` is empty or contains something else.
    ShapeMismatchError
        If the accumulators do not share the same order and shape.
    """
    iterator = iter(accumulators)
    try:
        first = next(iterator)
    except StopIteration:
        raise InvalidArgumentError('Nothing to combine') from None

    if not isinstance(first, MomentAccumulator):
        raise InvalidArgumentError(f'Expected a MomentAccumulator, got {type(first).__name__}')
    return reduce(MomentAccumulator.merge, iterator, first.copy())


def _readonly(arr: np.ndarray) -> np.ndarray:
    # Unlike a plain view, the flag of this one cannot be set back to True.
    return np.lib.stride_tricks.as_strided(arr, writeable=False)
