"""
Application Layer

Orchestrates domain objects and infrastructure ports to fulfil playback use cases.

Structure:
- interfaces/: Port interfaces for infrastructure adapters
- services/: The session registry and the playback controller
"""
