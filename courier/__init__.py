"""
Courier - Messaging Session Gateway

Bridges an HTTP control plane to a single authenticated session on an
external real-time messaging network.

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- session: Connection lifecycle state machine
- dispatch: Outbound message delivery
- transport: Messaging network client interface
- storage: Credential persistence
- api: REST API models
- auth: API key verification
- middleware: Request guards for the control surface
"""

__version__ = "1.0.0"
