"""Constants shared across the suite."""

CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_FORM = "application/x-www-form-urlencoded"
CONTENT_TYPE_TEXT = "text/plain"

HTTP_OK = 200
HTTP_CREATED = 201
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_NOT_FOUND = 404
HTTP_INTERNAL_SERVER_ERROR = 500

# API endpoints, relative to the environment's base URL
API_ENDPOINTS = {
    'SIGN_UP': '/signup',
    'LOGIN': '/login',
    'ADD_TO_CART': '/addtocart',
    'VIEW_CART': '/viewcart',
}

# Web front-end pages, relative to the web URL
WEB_ENDPOINTS = {
    'LANDING': '/',
}

DEFAULT_WEB_URL = "https://www.demoblaze.com"

PROJECT_ID = 999
PROJECT_NAME = "demoblaze-load-test"

USER_CATEGORIES = ('customer', 'admin', 'guest')
