"""Store adapters, workspace locking and timeline orchestration."""
