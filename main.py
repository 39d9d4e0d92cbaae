"""Main entry point for the Event Marketplace API."""

from event_marketplace.main import app

def main():
    """Main function for CLI entry point."""
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

if __name__ == "__main__":
    main()
