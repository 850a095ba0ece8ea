from .quadrature import edge, volume
__all__ = ['edge', 'volume']
