from docmerge.normalization.base import BaseNormalizer
from docmerge.normalization.factory import NormalizerFactory
from docmerge.normalization.normalizer import DocumentNormalizer

__all__ = ["BaseNormalizer", "DocumentNormalizer", "NormalizerFactory"]
