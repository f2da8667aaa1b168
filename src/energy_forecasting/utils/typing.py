# stdlib
from typing import Literal, Union, Sequence, get_args
from pathlib import Path
# thirdpartylib
import numpy as np
from numpy.typing import NDArray

# Verbosity for classes, functions, methods, etc.
type Verbosity = Literal[0, 1, 2]
# Mode for opening documents
type ReadMode = Literal["r"]
type WriteMode = Literal["w", "x"]
type OpenMode = Literal[ReadMode, WriteMode]
# Type alias for file/folder paths
type Address = Union[str, Path]
# One-dimensional numeric input accepted by the core
type ArrayLike1D = Union[Sequence[float], NDArray[np.floating]]
type FloatArray = NDArray[np.float64]
# How forecast steps are paired with actual readings
type AlignmentPolicy = Literal["index", "timestamp"]
# Regression model families available to the pipeline
type ModelKind = Literal["lstm", "linear"]

# Elements of the aliases above, for validation and CLI choices
ALIGNMENT_POLICIES: tuple[str, ...] = get_args(AlignmentPolicy.__value__)
MODEL_KINDS: tuple[str, ...] = get_args(ModelKind.__value__)
