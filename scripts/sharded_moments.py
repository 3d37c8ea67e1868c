import numpy as np
import time

from concurrent.futures import ProcessPoolExecutor
from datetime import datetime
from typing import Any, Dict, List, Tuple

from online_moments import MomentAccumulator, combine



SHAPE = (4, 3)
"""
Shape of a data sample.
"""
LOC = 10.0
"""
Mean of the generated samples.
"""
SCALE = 2.0
"""
Standard deviation of the generated samples.
"""



def fold_shard(
    shard_id: int,
    n_samples: int,
    shape: Tuple[int, ...] = SHAPE,
    seed: int|None = None
) -> MomentAccumulator:
    """
    Generate a shard of samples and collect their statistics in a private accumulator.

    Samples are drawn one at a time and never stored, as an ingestion
    collaborator reading from a stream would.

    Parameters
    ----------
    shard_id : int
        Index of the shard, used for logging.
    n_samples : int
        Number of samples in the shard.
    shape : tuple of int, default=SHAPE
        Shape of a data sample.
    seed : int or None, default=None
        Seed for the random generator of the shard.

    Returns
    -------
    : MomentAccumulator
        Statistics of the shard.
    """
    now = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
    print(f'[{now}] [Shard {shard_id}] Starting...', flush=True)

    rng = np.random.default_rng(seed)
    acc = MomentAccumulator(shape)
    acc.update(rng.normal(LOC, SCALE, size=shape) for _ in range(n_samples))

    now = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
    print(f'[{now}] [Shard {shard_id}] Finished ({acc.nobs} samples)', flush=True)
    return acc


def sequential_reference(params: List[Dict[str, Any]]) -> MomentAccumulator:
    """
    Collect the statistics of all the shards in a single accumulator.

    Parameters
    ----------
    params : list of dict of str to any
        Keyword arguments of `fold_shard` for each shard.

    Returns
    -------
    : MomentAccumulator
        Statistics of all the samples, pushed in shard order.
    """
    acc = MomentAccumulator(SHAPE)
    for p in params:
        rng = np.random.default_rng(p['seed'])
        for _ in range(p['n_samples']):
            acc.push(rng.normal(LOC, SCALE, size=SHAPE))
    return acc



if __name__ == '__main__':
    max_workers = 4
    n_shards = 8

    start_time = time.time()
    current_time = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
    print(f'Started at {current_time}')

    # Unbalanced shards on purpose
    params = [{
        'shard_id': i,
        'n_samples': 1_000 * (i + 1),
        'seed': 1234 + i,
    } for i in range(n_shards)]

    # Parallel run
    with ProcessPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(fold_shard, **p) for p in params]
    partials = [f.result() for f in futures]

    # Reduce in reverse order, the result does not depend on it
    merged = combine(reversed(partials))
    reference = sequential_reference(params)

    print(
        f'Results:\n'
        f'- [N] Merged: {merged.nobs}, Sequential: {reference.nobs}\n'
        f'- [MEAN] Average over positions: {np.round(merged.mean().mean(), 4)} (expected {LOC})\n'
        f'- [STD] Average over positions: {np.round(merged.std().mean(), 4)} (expected {SCALE})\n'
        f'- [MEAN] Max deviation from sequential: {np.abs(merged.mean() - reference.mean()).max():.3e}\n'
        f'- [VAR] Max deviation from sequential: {np.abs(merged.variance() - reference.variance()).max():.3e}'
    )

    end_time = time.time()
    execution_time = end_time - start_time
    current_time = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
    print(f'Done at {current_time} | Execution time: {execution_time:.2f} seconds')
