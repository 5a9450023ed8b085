from logcascade.clients.rpc import RPC

__all__ = ["RPC"]
