import json
import os

from flask import Flask, jsonify

app = Flask(__name__)

# Load mock data
DATA_FILE = os.path.join(os.path.dirname(__file__), 'data.json')
with open(DATA_FILE, 'r') as f:
    MOCK_DATA = json.load(f)


# Grouped delivery records, keyed by delivery
@app.route('/api/data', methods=['GET'])
def get_data():
    return jsonify(MOCK_DATA)


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=8080)
