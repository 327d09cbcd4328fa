from models.settlement import Settlement

__all__ = ["Settlement"]
