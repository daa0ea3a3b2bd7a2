# app.py

from neuroguessr import create_app
from neuroguessr.config import PORT

# GEO_API is read here, once
app = create_app()

if __name__ == "__main__":
    # threaded: /locate calls the proxy route on this same server
    app.run(host="0.0.0.0", port=PORT, threaded=True)
