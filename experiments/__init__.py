# experiments/__init__.py

from experiments.compton import ComptonExperiment
from experiments.diffraction import DiffractionExperiment
from experiments.franck_hertz import FranckHertzExperiment
from experiments.malus import MalusExperiment
from experiments.michelson_morley import MichelsonMorleyExperiment
from experiments.millikan import MillikanExperiment
from experiments.photoelectric import PhotoelectricExperiment
from experiments.snell import SnellExperiment

EXPERIMENTS = {
    cls.name: cls
    for cls in (
        MillikanExperiment,
        PhotoelectricExperiment,
        FranckHertzExperiment,
        ComptonExperiment,
        MichelsonMorleyExperiment,
        MalusExperiment,
        DiffractionExperiment,
        SnellExperiment,
    )
}


def create(name: str, rng):
    """Instantiates a registered experiment. Unknown names raise KeyError."""
    try:
        cls = EXPERIMENTS[name]
    except KeyError:
        raise KeyError(f"Unknown experiment '{name}'. Available: {sorted(EXPERIMENTS)}") from None
    return cls(rng)
