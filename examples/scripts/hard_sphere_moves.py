"""
Hard Sphere Moves - Simple Example

Runs translational and rotational trial moves on a salt solution with
hard-sphere overlap as the only acceptance criterion. Demonstrates the
trial/accepted pattern:

    - the move mutates a trial copy of the space
    - it records what it touched in a Change
    - on acceptance the accepted space syncs only the touched parts;
      on rejection the trial space syncs back from the accepted one

Expected results:
    - Acceptance ratio well above zero for the dilute salt
    - Accepted and trial spaces identical after every step
"""

import math
import sys
from pathlib import Path

import numpy as np

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from mcspace import Change, load_setup, setup_logging
from mcspace.core.vector import QuaternionRotate, ranunit


def overlaps(space, group, offsets) -> bool:
    """True if any of the given active particles overlaps another active particle."""
    p = space.active_particles()
    for i in offsets:
        a = group.active[i]
        d2 = space.geo.sqdist(p['pos'], a['pos'])
        contact = (p['radius'] + a['radius'])**2
        if np.count_nonzero(d2 < contact) > 1:  # itself included
            return True
    return False


def translate_atom(trial, rand, change: Change):
    """Displace one random atom of an atomic group."""
    atomic = [i for i, g in enumerate(trial.groups) if g.atomic and not g.empty()]
    index = rand.sample(atomic)
    g = trial.groups[index]
    offset = rand.range(0, g.size() - 1)
    dp = trial.atoms[int(g.active['id'][offset])].dp
    pos = g.active['pos'][offset]
    pos += dp * (np.array([rand(), rand(), rand()]) - 0.5)
    trial.geo.boundary(pos)
    change.add_group(index).touch(offset)
    return g, [offset]


def rotate_molecule(trial, rand, change: Change):
    """Rotate one random molecular group around its mass center."""
    molecular = [i for i, g in enumerate(trial.groups) if not g.atomic and not g.empty()]
    index = rand.sample(molecular)
    g = trial.groups[index]
    rot = QuaternionRotate((rand() - 0.5) * math.pi / 4, ranunit(rand))
    g.rotate(rot, trial.geo.boundary)
    change.add_group(index, all_changed=True)
    return g, range(g.size())


def run(config: Path, steps: int = 2000):
    setup = load_setup(config, verbose=True)
    accepted, rand = setup.space, setup.random
    trial = accepted.copy()

    print(f"\n{'='*70}")
    print(f"Hard Sphere Moves")
    print(f"{'='*70}")
    print(f"  Groups: {len(accepted.groups)}")
    print(f"  Active particles: {accepted.num_particles()}")
    print(f"  Volume: {accepted.geo.get_volume():.1f} Å³")
    print(f"{'='*70}\n")

    n_accepted = 0
    change = Change()
    for _ in range(steps):
        change.clear()
        move = translate_atom if rand() < 0.5 else rotate_molecule
        group, offsets = move(trial, rand, change)
        if overlaps(trial, group, offsets):
            trial.sync(accepted, change)
        else:
            accepted.sync(trial, change)
            n_accepted += 1

    print(f"  Acceptance ratio: {n_accepted / steps:.3f}")
    assert accepted.p.tobytes() == trial.p.tobytes()
    return n_accepted / steps


if __name__ == "__main__":
    setup_logging()
    run(Path(__file__).parent.parent / "salt.yml")
