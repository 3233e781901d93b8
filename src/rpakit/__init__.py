"""Read and extract Ren'Py (.rpa) archives."""

__version__ = "0.1.0"
