from sensordash.factory import create_app

app = create_app()
