from flask_cors import CORS
from flask_pymongo import PyMongo

# Initialize PyMongo; bound to the app in create_app()
mongo = PyMongo()
cors = CORS()
