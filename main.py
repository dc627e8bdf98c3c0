# main.py

from dotenv import load_dotenv
load_dotenv(override=True)

from possync import create_app

# Fungsi ini yang akan dipanggil oleh Uvicorn (factory=True)
app = create_app
