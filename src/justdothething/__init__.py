"""justdothething -- local focus monitor behind "Yell Mode".

This package periodically captures the screen and the webcam, decides
whether the on-screen content is work and whether the user is looking
at it, and interrupts with a spoken or notified message when either
signal says the user has drifted off task. All perception runs locally;
frames never leave the process.
"""

__version__ = "0.1.0"
