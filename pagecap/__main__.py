from pagecap.api.main import run_server

run_server()
