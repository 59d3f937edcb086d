import argparse
from pathlib import Path
from typing import Optional, Sequence

class Config:
    """
    Central configuration manager for the FlowLift workout player backend.
    Handles command-line argument parsing, logging modes, and timing parameters.
    """

    def __init__(self):
        # Application mode settings
        self.debug_mode: str = "debug"
        self.save_state: bool = True
        self.state_file: Path = Path("flowlift_state.json")

        # Server settings
        self.host: str = "0.0.0.0"
        self.port: int = 8000

        # Timer engine parameters
        self.countdown_seconds: int = 5  # "Get ready" pre-roll before breathing starts
        self.rest_tick_seconds: float = 1.0  # Rest and countdown step size

        # Breathing settings surface limits (seconds)
        self.breathing_min: float = 0.0
        self.breathing_max: float = 10.0
        self.default_breathing = {"inhale": 2.0, "holdIn": 1.0, "exhale": 2.0, "holdOut": 2.0}

        # Human-readable descriptions for each debug mode
        self.mode_descriptions = {
            "debug": "Debug Mode (verbose transition logging)",
            "non_debug": "Non-Debug Mode (minimal logging)"
        }

    def setup_from_args(self, argv: Optional[Sequence[str]] = None):
        """
        Parse command line arguments and configure application settings.
        Unknown arguments are left alone so the app can be imported by other runners.
        """
        parser = argparse.ArgumentParser(description="FlowLift Workout Player Backend")
        parser.add_argument(
            "--mode",
            choices=["debug", "non_debug"],
            default="debug",
            help="Logging mode setting"
        )
        parser.add_argument("--state-file", default=str(self.state_file), help="Snapshot JSON path")
        parser.add_argument("--no-save", action="store_true", help="Do not persist state snapshots")
        parser.add_argument("--countdown", type=int, default=self.countdown_seconds, help="Get-ready seconds")
        parser.add_argument("--host", default=self.host)
        parser.add_argument("--port", type=int, default=self.port)
        args, _ = parser.parse_known_args(argv)

        self.debug_mode = args.mode
        self.state_file = Path(args.state_file)
        self.save_state = not args.no_save
        self.countdown_seconds = max(0, args.countdown)
        self.host = args.host
        self.port = args.port

    @property
    def mode_description(self) -> str:
        """Get human-readable description of current mode"""
        return self.mode_descriptions[self.debug_mode]

# Global configuration instance - import this in other modules
config = Config()
