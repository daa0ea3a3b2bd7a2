from neuroguessr.frontend.main import SessionRegistry, bp

__all__ = ["SessionRegistry", "bp"]
