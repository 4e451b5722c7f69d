"""Init file.
"""
from .core import (Candidates, EmptySelectionError, GeneratorConfig,
                   ImageFolder, NoCandidatesError, Patches, Region, Template,
                   load_image, to_gray)
from .export import patch_filename, write_patches
from .extract import extract_patches
from .generator import SampleGenerator
from .montage import collage, montage
from .ncc import NCC
from .peaks import find_candidates, local_maxima
from .scoring import border_mask, normalize_scores, suppress_self_match
from .selection import SelectionState
