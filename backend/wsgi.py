from taller import create_app

app = create_app()
