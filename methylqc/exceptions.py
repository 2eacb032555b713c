__all__ = [
    'MethylQCError',
    'IndexMismatchError',
    'AllSamplesFailedError',
    'AllProbesFailedError',
    'MissingAnnotationError',
    'MetadataJoinMismatchError',
]


def _preview(ids, limit=10):
    ids = list(ids)
    if len(ids) <= limit:
        return ids
    return ids[:limit] + [f'... ({len(ids) - limit} more)']


class MethylQCError(Exception):
    """Base class for all errors raised by methylqc."""


class IndexMismatchError(MethylQCError, ValueError):
    """Two matrices that must be co-aligned differ in probe or sample membership/order.

    Arguments:
        stage {string} -- the processing step where the check failed.

    Keyword Arguments:
        probes {list} -- probe ids present on one side only.
        samples {list} -- sample ids present on one side only.
        detail {string} -- extra free-text context (e.g. 'order differs').
    """

    def __init__(self, stage, probes=None, samples=None, detail=None):
        self.stage = stage
        self.probes = list(probes or [])
        self.samples = list(samples or [])
        message = f"[{stage}] matrices are not index-aligned"
        if detail:
            message += f": {detail}"
        if self.probes:
            message += f" | {len(self.probes)} mismatched probes: {_preview(self.probes)}"
        if self.samples:
            message += f" | {len(self.samples)} mismatched samples: {_preview(self.samples)}"
        super().__init__(message)


class AllSamplesFailedError(MethylQCError):
    """A QC step would remove every remaining sample."""

    def __init__(self, stage, n_in, threshold=None):
        self.stage = stage
        self.n_in = n_in
        self.threshold = threshold
        super().__init__(
            f"[{stage}] all {n_in} samples failed (threshold={threshold}). "
            "Check the threshold or the input data.")


class AllProbesFailedError(MethylQCError):
    """A QC step would remove every remaining probe."""

    def __init__(self, stage, n_in):
        self.stage = stage
        self.n_in = n_in
        super().__init__(
            f"[{stage}] all {n_in} probes would be excluded. "
            "Check the filter settings or the reference files.")


class MissingAnnotationError(MethylQCError):
    """Probes in the matrix have no entry in the annotation reference.

    This is a reporting type: exclusion passes record it on their FilterResult
    and the run continues without these probes."""

    def __init__(self, stage, probes):
        self.stage = stage
        self.probes = list(probes)
        super().__init__(
            f"[{stage}] {len(self.probes)} probes missing from annotation: {_preview(self.probes)}")


class MetadataJoinMismatchError(MethylQCError):
    """Samples in the filtered cohort and the covariate table don't match one-to-one."""

    def __init__(self, missing_metadata, missing_samples):
        self.missing_metadata = list(missing_metadata)
        self.missing_samples = list(missing_samples)
        super().__init__(
            f"{len(self.missing_metadata)} samples have no metadata row: {_preview(self.missing_metadata)}; "
            f"{len(self.missing_samples)} metadata rows have no sample: {_preview(self.missing_samples)}")
