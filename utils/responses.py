from flask import request, jsonify, flash, redirect, url_for


def wants_json():
    """JSON clients ask for it explicitly, post JSON or send an XHR header."""
    if request.is_json or request.headers.get("X-Requested-With") == "XMLHttpRequest":
        return True
    best = request.accept_mimetypes.best_match(["application/json", "text/html"])
    return best == "application/json"


def render_page(component, props, status=200):
    """Page object consumed by the front-end bridge."""
    response = jsonify({
        "component": component,
        "props": props,
        "url": request.full_path.rstrip("?"),
    })
    response.headers["X-Inertia"] = "true"
    response.headers["Vary"] = "Accept"
    return response, status


def _back(redirect_to=None, **values):
    if redirect_to:
        return redirect(url_for(redirect_to, **values))
    return redirect(request.referrer or "/")


def respond(message, status=200, redirect_to=None, redirect_values=None, **payload):
    if wants_json():
        return jsonify({"message": message, **payload}), status
    flash(message, "success")
    return _back(redirect_to, **(redirect_values or {}))


def fail(message, status=500, redirect_to=None, redirect_values=None):
    if wants_json():
        return jsonify({"error": message}), status
    flash(message, "error")
    return _back(redirect_to, **(redirect_values or {}))


def request_data():
    if request.is_json:
        return request.get_json(silent=True) or {}
    data = {}
    for key in request.form.keys():
        values = request.form.getlist(key)
        name = key[:-2] if key.endswith("[]") else key
        data[name] = values if key.endswith("[]") or len(values) > 1 else values[0]
    return data
