"""
Utilities for building a simulation space from YAML configuration.

Example input:

    temperature: 298.15
    random: {seed: default}
    geometry: {length: [40, 40, 40]}
    atomlist:
        - Na: {q: 1.0, r: 1.9, dp: 0.5}
        - Cl: {q: -1.0, r: 1.7, dp: 0.5}
    moleculelist:
        - salt: {atoms: [Na, Cl], atomic: true}
    insertmolecules:
        - salt: {N: 20, inactive: 2}
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
import yaml
from tqdm import tqdm

from mcspace import units
from mcspace.errors import ConfigurationError
from mcspace.core.catalog import AtomData, AtomRegistry, MoleculeData, MoleculeRegistry, Registry
from mcspace.core.particle import Capability, empty_particles
from mcspace.core.random import Random
from mcspace.core.space import Space
from mcspace.core.vector import point_from_list
from mcspace.geometry.boundary import Geometry
from mcspace.molecules.inserter import RandomInserter

logger = logging.getLogger(__name__)


@dataclass
class SimulationSetup:
    """Container returned by the configuration loader."""

    atoms: AtomRegistry
    molecules: MoleculeRegistry
    geometry: Geometry
    random: Random
    space: Space
    temperature: float = units.DEFAULT_TEMPERATURE
    metadata: Dict[str, Any] = field(default_factory=dict)


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    path = Path(path)
    with path.open("r", encoding="utf-8") as handle:
        content = yaml.safe_load(handle)
    if not isinstance(content, dict):
        raise ConfigurationError(f"YAML file {path} must contain a mapping at the root.")
    return content


def load_setup(source: Union[str, Path, Dict[str, Any]], verbose: bool = False,
               capabilities: Capability = Capability.ALL) -> SimulationSetup:
    """
    Build catalogs, geometry, random source and a populated space.

    Parameters:
        source: YAML file path or an already parsed mapping
        verbose: Show a progress bar while inserting molecules
        capabilities: Particle capabilities enabled in the space

    Returns:
        SimulationSetup bundle; the catalogs are frozen
    """
    data = source if isinstance(source, dict) else load_yaml(source)
    temperature = float(data.get("temperature", units.DEFAULT_TEMPERATURE))

    rand = build_random(data.get("random"))
    atoms = build_atoms(data.get("atomlist", []), temperature, capabilities)
    molecules = build_molecules(data.get("moleculelist", []), atoms, capabilities)
    if "geometry" not in data:
        raise ConfigurationError("configuration requires a 'geometry' section")
    geometry = build_geometry(data["geometry"])

    atoms.freeze()
    molecules.freeze()

    space = Space(geometry, atoms, molecules, capabilities)
    insert_molecules(space, data.get("insertmolecules", []), rand, verbose)
    logger.info(f"Setup complete: {len(space.groups)} groups, {space.num_particles()} active particles, "
                f"volume {geometry.get_volume():.4g} Å³")

    return SimulationSetup(atoms=atoms, molecules=molecules, geometry=geometry, random=rand,
                           space=space, temperature=temperature, metadata=data.get("metadata", {}))


# ============================================================================
# Builders
# ============================================================================

def build_random(config: Optional[Dict[str, Any]]) -> Random:
    return Random.from_dict(config)


def build_geometry(config: Dict[str, Any]) -> Geometry:
    return Geometry.from_dict(config)


def build_atoms(records, temperature: float = units.DEFAULT_TEMPERATURE,
                capabilities: Capability = Capability.ALL) -> AtomRegistry:
    atoms: AtomRegistry = Registry()
    atoms.extend_from_records(records, lambda r: AtomData.from_dict(r, capabilities, temperature))
    return atoms


def build_molecules(records, atoms: AtomRegistry,
                    capabilities: Capability = Capability.ALL) -> MoleculeRegistry:
    molecules: MoleculeRegistry = Registry()

    def factory(record: Dict[str, Any]) -> MoleculeData:
        mol = MoleculeData.from_dict(record)
        val = next(iter(record.values())) or {}
        _add_conformations(mol, val, atoms)
        mol.set_inserter(RandomInserter.from_molecule(mol, capabilities=capabilities))
        return mol

    molecules.extend_from_records(records, factory)
    return molecules


def _add_conformations(mol: MoleculeData, val: Dict[str, Any], atoms: AtomRegistry):
    """Conformations from `structure`, `conformations` or the `atoms` list."""
    if "atoms" in val:
        names = val["atoms"]
        if not isinstance(names, list):
            raise ConfigurationError(f"molecule '{mol.name}': 'atoms' must be a list of names")
        mol.atoms = [atoms.id_of(str(n)) for n in names]

    structures: List[Any] = []
    if val.get("structure") is not None:
        structures.append(val["structure"])
    structures.extend(val.get("conformations", []))
    weights = val.get("weights", [1.0] * len(structures))
    if len(weights) != len(structures):
        raise ConfigurationError(
            f"molecule '{mol.name}': {len(weights)} weights for {len(structures)} conformations")

    for structure, weight in zip(structures, weights):
        mol.add_conformation(_structure_to_particles(mol, structure, atoms), weight)

    if not mol.conformations and mol.atoms:
        p = empty_particles(len(mol.atoms))
        for i, atomid in enumerate(mol.atoms):
            p[i] = atoms[atomid].p.to_structured_array()[0]
        mol.add_conformation(p)


def _structure_to_particles(mol: MoleculeData, structure, atoms: AtomRegistry) -> np.ndarray:
    if isinstance(structure, str):
        raise ConfigurationError(
            f"molecule '{mol.name}': structure files are not supported; "
            f"give an inline list of {{atom: [x, y, z]}} entries")
    if not isinstance(structure, list) or not structure:
        raise ConfigurationError(f"molecule '{mol.name}': structure must be a non-empty list")
    p = empty_particles(len(structure))
    for i, entry in enumerate(structure):
        if not isinstance(entry, dict) or len(entry) != 1:
            raise ConfigurationError(f"molecule '{mol.name}': structure entry {i} must be {{atom: [x, y, z]}}")
        name, pos = next(iter(entry.items()))
        atom = atoms.find_name(str(name))
        if atom is None:
            raise ConfigurationError(f"molecule '{mol.name}': unknown atom '{name}'")
        p[i] = atom.p.to_structured_array()[0]
        p['pos'][i] = point_from_list(pos)
    if not mol.keeppos:
        p['pos'] -= p['pos'].mean(axis=0)
    return p


# ============================================================================
# Initial configuration
# ============================================================================

def _insert_records(records) -> List[tuple]:
    if isinstance(records, dict):
        return [(k, records[k]) for k in records]
    if not isinstance(records, list):
        raise ConfigurationError("insertmolecules: list or mapping expected")
    out = []
    for r in records:
        if not isinstance(r, dict) or len(r) != 1:
            raise ConfigurationError("insertmolecules: single-key mapping expected")
        out.append(next(iter(r.items())))
    return out


def insert_molecules(space: Space, records, rand: Random, verbose: bool = False):
    """
    Populate `space` with randomly inserted molecules.

    Atomic species become one group holding all atoms; other species one
    group per molecule. `inactive: k` deactivates the last k molecules.
    """
    for name, opts in _insert_records(records):
        opts = opts or {}
        try:
            N = int(opts.get("N", 0))
            inactive = int(opts.get("inactive", 0))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"insertmolecules '{name}': {e}") from e
        if N < 0 or not 0 <= inactive <= N:
            raise ConfigurationError(f"insertmolecules '{name}': need 0 <= inactive <= N")
        mol = space.molecules[space.molecules.id_of(str(name))]

        if N == 0:
            continue

        inserted = []
        for _ in tqdm(range(N), desc=f"Inserting {name}", unit="mol", disable=not verbose):
            p = mol.insert(space.geo, rand, space.p)
            if mol.atomic:
                inserted.append(p)
            else:
                inserted.append(space.push_back(mol.id, p))

        if mol.atomic:
            g = space.push_back(mol.id, np.concatenate(inserted))
            natoms = g.size() // N
            g.deactivate(g.size() - inactive * natoms, g.size())
        else:
            for g in inserted[N - inactive:]:
                g.deactivate(0, g.size())
        logger.info(f"Inserted {N} x '{name}' ({inactive} inactive)")
