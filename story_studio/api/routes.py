from __future__ import annotations

from typing import Any, Dict, Optional

from flask import current_app, jsonify, request
from werkzeug.exceptions import MethodNotAllowed

from ..models import Character
from ..services.character_extraction import extract_characters
from ..services.indexing import IndexingError, split_and_embed
from ..services.story_generation import generate_story
from . import bp


class InvalidRequestError(ValueError):
    """Raised when a request body is missing required fields."""


@bp.route("/extractcharacters", methods=["POST"])
def extract_characters_endpoint():
    try:
        body = _json_body()
        nodes = body.get("nodesWithEmbedding")
        if not isinstance(nodes, list) or not all(isinstance(node, dict) for node in nodes):
            raise InvalidRequestError("Invalid or missing nodesWithEmbedding")
        temperature, top_p = _decoding_parameters(body)
    except InvalidRequestError as exc:
        return jsonify({"error": str(exc)}), 400

    texts = [_node_text(node) for node in nodes]

    try:
        result = extract_characters(texts, temperature=temperature, top_p=top_p)
    except Exception as exc:
        current_app.logger.exception("Error processing request")
        return _error_response(exc)

    if result.discarded_chunks:
        current_app.logger.warning(
            "%d of %d chunk result(s) could not be parsed", result.discarded_chunks, result.chunk_count
        )
    return jsonify({"payload": {"characters": [character.to_dict() for character in result.characters]}})


@bp.route("/generatestory", methods=["POST"])
def generate_story_endpoint():
    try:
        body = _json_body()
        raw_characters = body.get("characters")
        if not isinstance(raw_characters, list) or not all(isinstance(item, dict) for item in raw_characters):
            raise InvalidRequestError("Invalid or missing characters array")
        temperature, top_p = _decoding_parameters(body)
    except InvalidRequestError as exc:
        return jsonify({"error": str(exc)}), 400

    characters = [Character.from_payload(item) for item in raw_characters]

    try:
        result = generate_story(characters, temperature=temperature, top_p=top_p)
    except Exception as exc:
        current_app.logger.exception("Error generating story")
        return _error_response(exc)

    return jsonify({"payload": {"story": result.story}})


@bp.route("/splitandembed", methods=["POST"])
def split_and_embed_endpoint():
    try:
        body = _json_body()
        document = body.get("document")
        if not isinstance(document, str) or not document:
            raise InvalidRequestError("Invalid or missing document")
        chunk_size = _integer(body, "chunkSize")
        chunk_overlap = _integer(body, "chunkOverlap")
    except InvalidRequestError as exc:
        return jsonify({"error": str(exc)}), 400

    try:
        nodes = split_and_embed(document, chunk_size, chunk_overlap)
    except IndexingError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception as exc:
        current_app.logger.exception("Error building index")
        return _error_response(exc)

    return jsonify({"payload": {"nodesWithEmbedding": [node.to_dict() for node in nodes]}})


@bp.app_errorhandler(MethodNotAllowed)
def method_not_allowed(exc: MethodNotAllowed):
    if not request.path.startswith(bp.url_prefix + "/"):
        return exc
    response = jsonify({"error": "Method not allowed"})
    response.status_code = 405
    if exc.valid_methods:
        response.headers["Allow"] = ", ".join(sorted(exc.valid_methods))
    return response


def _json_body() -> Dict[str, Any]:
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise InvalidRequestError("Request body must be a JSON object")
    return body


def _decoding_parameters(body: Dict[str, Any]) -> tuple[Optional[float], Optional[float]]:
    return _number(body, "temperature"), _number(body, "topP")


def _number(body: Dict[str, Any], key: str) -> Optional[float]:
    value = body.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidRequestError(f"{key} must be a number")
    return float(value)


def _integer(body: Dict[str, Any], key: str) -> int:
    value = body.get(key)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRequestError(f"Invalid or missing {key}")
    return value


def _node_text(node: Dict[str, Any]) -> str:
    text = node.get("text")
    if text is None:
        return ""
    return text if isinstance(text, str) else str(text)


def _error_response(exc: Exception):
    message = str(exc) or "An unknown error occurred"
    return jsonify({"error": message}), 500
