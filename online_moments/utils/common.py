""" Common utilities.
"""
import numpy as np

from typing import Iterable, Tuple

from ..errors import InvalidArgumentError, ShapeMismatchError



def to_shape(dims: int|Iterable[int]) -> Tuple[int, ...]:
    """
    Convert dimensions to an array shape.

    Parameters
    ----------
    dims : int or iterable of int
        Dimensions of a data sample.
        A single integer is the length of a one-dimensional sample.

    Returns
    -------
    : tuple of int
        The shape as a tuple of Python integers.

    Raises
    ------
    InvalidArgumentError
        If a dimension is not an integer or is negative.
    """
    if _is_integer(dims):
        dims = (dims,)
    try:
        dims = tuple(dims)
    except TypeError:
        raise InvalidArgumentError(f'Invalid dimensions {dims!r}') from None

    for dim in dims:
        if not _is_integer(dim):
            raise InvalidArgumentError(f'Dimensions must be integers, got {dims!r}')
        if dim < 0:
            raise InvalidArgumentError(f'Dimensions must be non-negative, got {dims!r}')
    return tuple(int(dim) for dim in dims)


def to_floating_dtype(dtype: np.dtype|type|str) -> np.dtype:
    """
    Convert `dtype` to a floating-point NumPy data type.

    Parameters
    ----------
    dtype : np.dtype or type or str
        Anything understood by `np.dtype`.

    Returns
    -------
    : np.dtype
        The corresponding data type.

    Raises
    ------
    InvalidArgumentError
        If `dtype` is not a real floating-point type.
    """
    try:
        dtype = np.dtype(dtype)
    except TypeError:
        raise InvalidArgumentError(f'Invalid data type {dtype!r}') from None

    if not np.issubdtype(dtype, np.floating):
        raise InvalidArgumentError(f'Statistics must be stored as floating-point values, got {dtype}')
    return dtype


def have_same_shape(*arrays: np.ndarray) -> bool:
    """
    Check whether all the given arrays have the same shape.

    Returns
    -------
    : bool
        True if all shapes are equal (or fewer than two arrays are given), False otherwise.
    """
    if len(arrays) < 2:
        return True
    shape = arrays[0].shape
    return all(arr.shape == shape for arr in arrays[1:])


def same_shape(*arrays: np.ndarray) -> Tuple[int, ...]:
    """
    Get the common shape of the given arrays.

    Parameters
    ----------
    *arrays : np.ndarray
        At least one array.

    Returns
    -------
    : tuple of int
        The shape shared by all the arrays.

    Raises
    ------
    ShapeMismatchError
        If the arrays do not all have the same shape.
    """
    if not have_same_shape(*arrays):
        raise ShapeMismatchError(f'Arrays have different shapes: {[arr.shape for arr in arrays]}')
    return arrays[0].shape


def to_position(index: int|Tuple[int, ...], shape: Tuple[int, ...]) -> Tuple[int, ...]:
    """
    Convert an index to a multi-dimensional position in an array of the given shape.

    An integer is a linear index in C (row-major) order, that is the position
    `arr.flat[index]`, while a tuple of integers is a multi-index, that is the
    position `arr[index]`. Negative values count from the end as usual.

    Parameters
    ----------
    index : int or tuple of int
        Linear index or multi-index.
    shape : tuple of int
        Shape of the indexed array.

    Returns
    -------
    : tuple of int
        Multi-index of the position, with all the values non-negative.

    Raises
    ------
    InvalidArgumentError
        If the index has the wrong type, the wrong length or is out of range.
    """
    if _is_integer(index):
        size = int(np.prod(shape, dtype=np.int64))
        if not -size <= index < size:
            raise InvalidArgumentError(f'Index {index} out of range for {size} elements')
        if len(shape) == 0:
            return ()
        return tuple(int(i) for i in np.unravel_index(int(index) % size, shape))

    if not isinstance(index, tuple):
        raise InvalidArgumentError(f'Index must be an integer or a tuple of integers, got {index!r}')
    if len(index) != len(shape):
        raise InvalidArgumentError(f'Expected {len(shape)} indices, got {len(index)}')

    position = list()
    for i, dim in zip(index, shape):
        if not _is_integer(i):
            raise InvalidArgumentError(f'Index must be an integer or a tuple of integers, got {index!r}')
        if not -dim <= i < dim:
            raise InvalidArgumentError(f'Index {index} out of range for shape {shape}')
        position.append(int(i) % dim)
    return tuple(position)


def _is_integer(x) -> bool:
    return isinstance(x, (int, np.integer)) and not isinstance(x, (bool, np.bool_))
