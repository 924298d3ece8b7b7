"""
Touchless Menu Kiosk
====================

Camera-driven menu kiosk: greets a visitor once they step close, estimates
who is in front of it, recommends drinks for them and lets them navigate
with hand gestures.

Packages:
    - core: Types, errors, events, session state and the pipeline
    - modules.capture: Camera frame acquisition
    - modules.detection: Proximity trigger and vision model adapters
    - modules.intelligence: Visitor profiling
    - modules.recognition: Debounced gesture classification
    - modules.control: Gesture lockout and navigation
    - modules.recommendation: Catalog and recommendation engine
    - modules.integrations: Weather service
    - modules.utils: Configuration and logging
"""

__version__ = "1.0.0"
