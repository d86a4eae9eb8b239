# /// script
# requires-python = ">=3.11"
# dependencies = ["typer>=0.9.0", "attsim"]
#
# [tool.uv.sources]
# attsim = { path = ".." }
# ///
"""Simulate the attitude of a small satellite on a circular orbit.

Runs one of the reference scenarios with the adaptive orbit integrator and
the Wilcox (or Edwards) quaternion update, then compares the final attitude
or spin with the closed-form answer.

Requires attsim to be installed (``uv pip install -e .`` from the repo root).

Usage:
    uv run examples/simulate_attitude.py [OPTIONS]

Examples:
    # Half turn about (1, 2, 3) in 100 s
    uv run examples/simulate_attitude.py

    # Same with the Edwards commutation correction and a coarser step
    uv run examples/simulate_attitude.py --algorithm edwards --timestep 0.5

    # Spin-up under a constant rotational acceleration
    uv run examples/simulate_attitude.py --scenario acceleration --duration 50
"""

import dataclasses
import enum
import logging
import time
from typing import Annotated

import jax.numpy as jnp
import typer

from attsim import Propagation, PropagationConfig, set_dtype
from attsim.propagation import ROTATIONAL_ACCELERATION_KEY, SPIN_KEY

set_dtype(jnp.float64)  # Must be before any JIT compilation


class Scenario(enum.StrEnum):
    """Reference scenario."""

    rotation = "rotation"
    acceleration = "acceleration"


class Algorithm(enum.StrEnum):
    """Quaternion update."""

    wilcox = "wilcox"
    edwards = "edwards"


def main(
    scenario: Annotated[Scenario, typer.Option(help="Reference scenario")] = Scenario.rotation,
    duration: Annotated[float, typer.Option(help="Simulation duration in seconds")] = 100.0,
    timestep: Annotated[float, typer.Option(help="Integration time step in seconds")] = 0.1,
    algorithm: Annotated[Algorithm, typer.Option(help="Quaternion update")] = Algorithm.wilcox,
    method: Annotated[str, typer.Option(help="Embedded Runge-Kutta method")] = "dp54",
    verbose: Annotated[bool, typer.Option(help="Log every propagation step")] = False,
) -> None:
    """Propagate the attitude for one scenario and report the final state."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    axis = jnp.array([1.0, 2.0, 3.0])
    spin0 = jnp.array([2.7, -1.5, 0.3])
    acceleration = jnp.array([0.01, 0.02, -0.03])

    if scenario == Scenario.rotation:
        config = PropagationConfig.simple_rotation(
            duration, tuple(axis.tolist()), timestep, str(algorithm)
        )
    else:
        config = PropagationConfig.constant_acceleration(
            duration, tuple(spin0.tolist()), tuple(acceleration.tolist()), timestep
        )
    config = dataclasses.replace(config, method=method, attitude_algorithm=str(algorithm))

    print(f"── Scenario: {scenario} ({config.method}, {config.attitude_algorithm}) ──")
    propagation = Propagation.from_config(config)

    t0 = time.perf_counter()
    final = propagation.run(config.duration)
    elapsed = time.perf_counter() - t0
    n_steps = round(config.duration / config.integration_time_step)
    print(f"  Propagated {config.duration:.1f} s in {elapsed:.2f} s (~{n_steps} steps)")

    print("\n── Results ──")
    print(f"  Attitude: {final.attitude.rotation}")
    if scenario == Scenario.rotation:
        n = axis / jnp.linalg.norm(axis)
        expected = jnp.concatenate([jnp.zeros(1), n])
        error = float(jnp.max(jnp.abs(final.attitude.rotation.to_vector() - expected)))
        print(f"  Expected: [0, {', '.join(f'{float(c):.6f}' for c in n)}]")
        print(f"  Max quaternion error: {error:.3e}")
    else:
        spin = final.get_additional_state(SPIN_KEY)
        expected = spin0 + acceleration * config.duration
        error = float(jnp.max(jnp.abs(spin - expected)))
        print(f"  Spin: {[round(float(s), 9) for s in spin]}")
        print(f"  Max spin error: {error:.3e}")
        print(f"  RotAcc: {[float(a) for a in final.get_additional_state(ROTATIONAL_ACCELERATION_KEY)]}")

    print("\nDone.")


if __name__ == "__main__":
    typer.run(main)
