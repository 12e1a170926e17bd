from normalize.normalizer import normalize

__all__ = ["normalize"]
