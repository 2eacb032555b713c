# Lib
import logging
import pandas as pd
# App
from .detection import probe_failure_mask, check_threshold
from ..exceptions import AllProbesFailedError, MissingAnnotationError
from ..files.annotations import DEFAULT_SNP_SITES, SEX_CHROMOSOMES


__all__ = [
    'FilterResult',
    'DetectionPass',
    'SexChromosomePass',
    'PolymorphismPass',
    'CrossReactivePass',
    'ProbeExclusionPipeline',
    'default_passes',
    'filter_report',
    'EXCLUSION_STEPS',
]


LOGGER = logging.getLogger(__name__)

EXCLUSION_STEPS = ('detection', 'sex_chromosome', 'polymorphism', 'cross_reactive')


class FilterResult():
    """Outcome of one exclusion pass over the probes that entered it.

    keep -- boolean Series indexed by the entering probes, in their order.
    missing_annotation -- probes excluded because the reference had no entry for them (a subset of removed).
    """
    __slots__ = (
        'name',
        'keep',
        'missing_annotation',
    )

    def __init__(self, name, keep, missing_annotation=None):
        self.name = name
        self.keep = keep.astype(bool)
        self.missing_annotation = list(missing_annotation or [])

    @property
    def n_in(self):
        return len(self.keep)

    @property
    def n_out(self):
        return int(self.keep.sum())

    @property
    def n_removed(self):
        return self.n_in - self.n_out

    @property
    def kept(self):
        return list(self.keep.index[self.keep])

    @property
    def removed(self):
        return list(self.keep.index[~self.keep])

    def __repr__(self):
        return f'FilterResult({self.name!r}: {self.n_in} -> {self.n_out})'

    def as_dict(self):
        return {
            'step': self.name,
            'probes_in': self.n_in,
            'probes_out': self.n_out,
            'probes_removed': self.n_removed,
            'missing_annotation': len(self.missing_annotation),
        }


class ExclusionPass():
    """ a pass takes the current probe ids and returns a FilterResult over them. """
    name = None

    def __call__(self, probes):
        raise NotImplementedError()

    def __repr__(self):
        return f'{self.__class__.__name__}()'


class DetectionPass(ExclusionPass):
    """Keeps probes detected (p < threshold) in every remaining sample.
    Probes with no detection p-values at all are excluded."""
    name = 'detection'

    def __init__(self, detp, threshold=0.01):
        check_threshold(threshold)
        self.detp = detp
        self.threshold = threshold

    def __call__(self, probes):
        probes = pd.Index(probes)
        missing = list(probes[~probes.isin(self.detp.probes)])
        failed = probe_failure_mask(self.detp.select_probes(probes), self.threshold)
        keep = ~probes.isin(failed) & probes.isin(self.detp.probes)
        return FilterResult(self.name, pd.Series(keep, index=probes), missing)


class _AnnotationPass(ExclusionPass):

    def __init__(self, annotation):
        self.annotation = annotation

    def flagged(self, probes):
        raise NotImplementedError()

    def missing(self, probes):
        return self.annotation.missing(probes)

    def __call__(self, probes):
        probes = pd.Index(probes)
        missing = self.missing(probes)
        if missing:
            LOGGER.warning(str(MissingAnnotationError(self.name, missing)) + ' -- excluding them')
        keep = ~self.flagged(probes).to_numpy(dtype=bool) & ~probes.isin(missing)
        return FilterResult(self.name, pd.Series(keep, index=probes), missing)


class SexChromosomePass(_AnnotationPass):
    """Drops probes annotated on the X or Y chromosome. A probe with no CHR counts as unannotated."""
    name = 'sex_chromosome'

    def __init__(self, annotation, sex_chromosomes=SEX_CHROMOSOMES):
        super().__init__(annotation)
        self.sex_chromosomes = sex_chromosomes

    def missing(self, probes):
        return self.annotation.missing(probes, column='CHR')

    def flagged(self, probes):
        return self.annotation.is_sex_chromosome(probes, self.sex_chromosomes)


class PolymorphismPass(_AnnotationPass):
    """Drops probes whose CpG or single base extension site overlaps a known SNP (see ProbeAnnotation.is_snp)."""
    name = 'polymorphism'

    def __init__(self, annotation, sites=DEFAULT_SNP_SITES, maf=0.0):
        super().__init__(annotation)
        self.sites = sites
        self.maf = maf

    def flagged(self, probes):
        return self.annotation.is_snp(probes, sites=self.sites, maf=self.maf)


class CrossReactivePass(ExclusionPass):
    """Drops probes listed as cross-reactive (exact id match)."""
    name = 'cross_reactive'

    def __init__(self, probe_ids):
        self.probe_ids = set(probe_ids)

    def __call__(self, probes):
        probes = pd.Index(probes)
        return FilterResult(self.name, pd.Series(~probes.isin(self.probe_ids), index=probes))


def default_passes(detp, annotation, cross_reactive_probes, threshold=0.01, steps=EXCLUSION_STEPS):
    """The standard passes, in the standard order: detection, sex chromosome, polymorphism, cross-reactive.
    `steps` picks a subset; the order stays fixed."""
    unknown = set(steps) - set(EXCLUSION_STEPS)
    if unknown:
        raise ValueError(f"Unknown exclusion steps {sorted(unknown)}; choose from {EXCLUSION_STEPS}")
    builders = {
        'detection': lambda: DetectionPass(detp, threshold),
        'sex_chromosome': lambda: SexChromosomePass(annotation),
        'polymorphism': lambda: PolymorphismPass(annotation),
        'cross_reactive': lambda: CrossReactivePass(cross_reactive_probes),
    }
    return [builders[step]() for step in EXCLUSION_STEPS if step in steps]


class ProbeExclusionPipeline():
    """Applies exclusion passes in sequence, subsetting after each one, so a pass only sees the
    probes that survived the passes before it.

    Arguments:
        passes {list} -- callables taking probe ids and returning a FilterResult.

    The final probe set does not depend on pass order, and running the pipeline again on its
    own output removes nothing. The per-pass counts do depend on order.
    """

    def __init__(self, passes):
        self.passes = list(passes)

    def run(self, values):
        """Filters `values` (a DerivedValueMatrix, or anything with .probes and .select_probes()).

        Raises:
            AllProbesFailedError: when a pass would leave no probes.

        Returns:
            (filtered values, [FilterResult, ...])
        """
        results = []
        current = values
        for exclusion_pass in self.passes:
            result = exclusion_pass(current.probes)
            if result.n_out == 0:
                raise AllProbesFailedError(result.name, result.n_in)
            LOGGER.info(f"{result.name}: {result.n_in} -> {result.n_out} probes ({result.n_removed} removed)")
            current = current.select_probes(result.kept)
            results.append(result)
        return current, results


def filter_report(results):
    """one row per exclusion pass, in the order they ran"""
    return pd.DataFrame(
        [result.as_dict() for result in results],
        columns=['step', 'probes_in', 'probes_out', 'probes_removed', 'missing_annotation'],
    )
