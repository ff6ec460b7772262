"""
Booking Sheet Service - Main Flask Application

This is the entry point for the Flask web application. It serves the tour
booking sheet as a JSON API: bookings (rows), tour packages and discount
events (reference data), and the column registry.
"""

from flask import Flask
from config import Config
from bookings import bookings_bp
from tour_packages import tour_packages_bp
from sheet_columns import sheet_columns_bp

# Create the Flask application instance
app = Flask(__name__)

# Load configuration from config.py
# This includes the GCP project, Datastore kinds, and recompute settings
app.config.from_object(Config)

# Register bookings blueprint
# This adds routes for browsing and editing booking rows (/bookings/*)
app.register_blueprint(bookings_bp)

# Register tour packages blueprint
# This adds routes for tour packages and discount events (/tour-packages/*)
app.register_blueprint(tour_packages_bp)

# Register sheet columns blueprint
# This adds read-only routes describing the sheet's columns (/columns/*)
app.register_blueprint(sheet_columns_bp)


@app.route('/health')
def health():
    """
    Health check endpoint.

    Used by App Engine and monitoring tools to verify the app is running.
    """
    return {'status': 'healthy', 'project': app.config['GCP_PROJECT_ID']}, 200


# This block only runs when testing locally (not needed for App Engine)
# App Engine uses gunicorn to run the app, not this dev server
if __name__ == '__main__':
    app.run(host='127.0.0.1', port=8080, debug=True)
