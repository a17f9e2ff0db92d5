class MosaicError(Exception):
    """Base class of all errors raised by the mosaic engine"""


class ImageLoadError(MosaicError):
    """The reference image could not be read"""


class InvalidGridError(MosaicError):
    """The grid can not be sampled from the reference image (e.g. cells smaller than one pixel)"""


class DegenerateGridError(MosaicError):
    """The grid sizing inputs do not produce a grid of at least one row and one column"""


class MosaicFullError(MosaicError):
    """No free, non-transparent cell is left in the mosaic"""


class PlacementConflictError(MosaicError):
    """A cell could not be reserved because concurrent submissions kept claiming it first"""
