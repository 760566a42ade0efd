"""ccsfast - Collision cross sections from multi-voltage drift-tube IMS data.

Frames acquired at several drift-tube voltages are grouped by voltage, the
target's arrival-time peaks are detected and scored per group, and a robust
fit of drift time against P/(V·T) across groups yields the ion's reduced
mobility and collision cross section. Competing peak assignments (isomers,
noise) are resolved by a capped combinatorial hypothesis search.

All hot loops are Numba-compiled; the only runtime dependencies are NumPy and
Numba.
"""

__version__ = "0.1.0"

# Import order matters: xic must load before data (data.source uses xic.extraction)
from ccsfast import constants
from ccsfast import exceptions
from ccsfast import units
from ccsfast import targets
from ccsfast import xic
from ccsfast import data
from ccsfast import voltage
from ccsfast import features
from ccsfast import scoring
from ccsfast import filters
from ccsfast import tracking
from ccsfast import workflow

from ccsfast.targets import (
    ImsTarget,
    IonizationAdduct,
    IonizationMethod,
    TargetType,
    TheoreticalIsotopeProfile,
    drift_time_target,
    molecule_target,
    molecule_target_from_mz,
    peptide_target,
)
from ccsfast.workflow import (
    AnalysisStatus,
    CrossSectionResult,
    CrossSectionSearchParameters,
    CrossSectionWorkflow,
)

__all__ = [
    "constants",
    "exceptions",
    "units",
    "targets",
    "xic",
    "data",
    "voltage",
    "features",
    "scoring",
    "filters",
    "tracking",
    "workflow",
    # Targets
    "ImsTarget",
    "IonizationAdduct",
    "IonizationMethod",
    "TargetType",
    "TheoreticalIsotopeProfile",
    "drift_time_target",
    "molecule_target",
    "molecule_target_from_mz",
    "peptide_target",
    # Workflow
    "AnalysisStatus",
    "CrossSectionResult",
    "CrossSectionSearchParameters",
    "CrossSectionWorkflow",
]
