from app.canvashub import create_app

app = create_app()
