import uvicorn
from config import config
from utils.logging_utils import setup_logging

if __name__ == "__main__":
    # Parse options before the app module is imported so its logging picks them up
    config.setup_from_args()
    setup_logging()

    from main import app

    # Display startup information with available command-line options
    print("\n" + "="*60)
    print("FlowLift Workout Player Backend")
    print("="*60)
    print(f"Mode: {config.mode_description}")
    print(f"State file: {config.state_file} ({'saving' if config.save_state else 'not saving'})")
    print("\nAvailable modes:")
    print("  python run.py --mode debug         # Log every phase transition")
    print("  python run.py --mode non_debug     # Minimal logging only")
    print("  python run.py --no-save            # Do not persist state snapshots")
    print("="*60 + "\n")

    # Start FastAPI server with CORS enabled for cross-origin requests
    uvicorn.run(app, host=config.host, port=config.port)
