from flask import Blueprint, jsonify, request, current_app
from sqlalchemy.exc import IntegrityError
from truth_hunters import db
from truth_hunters.models import CustomClaim
from truth_hunters.services.claims import GAME_DIFFICULTIES, ClaimsLoadError, validate_claims
from truth_hunters.services.moderation import sanitize_claim_text, sanitize_input
from truth_hunters.services.games import rounds
import uuid


claims = Blueprint('claims', __name__)


@claims.route('', methods=['GET'])
def list_claims():
    difficulty = request.args.get('difficulty')
    if difficulty and difficulty not in GAME_DIFFICULTIES:
        return jsonify({'error': 'Unknown difficulty'}), 400
    subjects = request.args.getlist('subject') or None
    try:
        found = rounds.catalog().filtered(difficulty=difficulty, subjects=subjects, extra=rounds.custom_claims())
    except ClaimsLoadError as exc:
        return jsonify({'error': str(exc)}), 503
    return jsonify([c.to_dict() for c in found])


@claims.route('/error-patterns', methods=['GET'])
def list_error_patterns():
    try:
        return jsonify(rounds.catalog().error_patterns())
    except ClaimsLoadError as exc:
        return jsonify({'error': str(exc)}), 503


@claims.route('', methods=['POST'])
def add_custom_claim():
    """Adds a instructor-authored claim to the pool games draw from."""
    data = request.get_json(silent=True) or {}
    record = {
        'id': f"custom-{uuid.uuid4().hex[:8]}",
        'text': sanitize_claim_text(data.get('text')),
        'answer': data.get('answer'),
        'source': data.get('source'),
        'explanation': sanitize_claim_text(data.get('explanation')),
        'error_pattern': sanitize_claim_text(data.get('error_pattern'))[:64] or None,
        'subject': sanitize_input(data.get('subject'), max_length=64),
        'difficulty': data.get('difficulty'),
    }
    report = validate_claims([record])
    if not report['valid']:
        return jsonify({'error': report['invalid_claims'][0]['reason']}), 400

    claim = CustomClaim(**record)
    db.session.add(claim)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({'error': 'Claim id already exists'}), 409
    current_app.logger.info(f"[claims] custom claim added id={claim.id}")
    return jsonify(claim.to_dict()), 201


@claims.route('/<string:claim_id>', methods=['DELETE'])
def delete_custom_claim(claim_id):
    claim = CustomClaim.query.filter_by(id=claim_id).first_or_404()
    db.session.delete(claim)
    db.session.commit()
    return jsonify({'message': 'Claim deleted'}), 200
