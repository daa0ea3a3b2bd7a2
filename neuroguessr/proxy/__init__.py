from neuroguessr.proxy.proxy import bp, forward

__all__ = ["bp", "forward"]
