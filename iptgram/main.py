from iptgram import create_app

app = create_app()
