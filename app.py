"""Development entry point: ``python app.py`` (install the package first)."""

from shiftboard.main import create_app

app = create_app()

if __name__ == "__main__":
    app.run(debug=app.config["DEBUG"])
