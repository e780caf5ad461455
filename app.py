import logging
from flask import Flask, request, jsonify
from exceptions import InvalidInputError, PayloadValidationError
from keywords import JOB_ROLES, resolve_target_role
from scorer import analyze_ats_score
from usage import FREE_TIER_LIMIT, USAGE_WINDOW, UsageLimiter

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config['MAX_CONTENT_LENGTH'] = 2 * 1024 * 1024  # 2MB max JSON body
app.config['FREE_TIER_LIMIT'] = FREE_TIER_LIMIT
app.config['USAGE_WINDOW_HOURS'] = int(USAGE_WINDOW.total_seconds() // 3600)

# Initialize usage limiter (global)
usage_limiter = None

def get_usage_limiter():
    """Get or initialize the usage limiter."""
    global usage_limiter
    if usage_limiter is None:
        usage_limiter = UsageLimiter(limit=app.config['FREE_TIER_LIMIT'])
        logger.info(f"Usage limiter initialized with limit {usage_limiter.limit}")
    return usage_limiter

def get_usage_key():
    """Derive the client identity from the first forwarded address."""
    forwarded = request.headers.get('X-Forwarded-For', '')
    ip = forwarded.split(',')[0].strip() if forwarded else (request.remote_addr or 'unknown')
    return f"ats_usage_{ip or 'unknown'}"

def parse_check_request():
    """Pull the resume and target role out of an /ats-check body."""
    body = request.get_json(silent=True)
    if not isinstance(body, dict) or body.get('resume') is None:
        raise PayloadValidationError('Resume data is required')

    label = body.get('targetRole')
    keywords = body.get('keywords') or []
    if label is not None and not isinstance(label, str):
        raise PayloadValidationError('targetRole must be a string')
    if not isinstance(keywords, list) or not all(isinstance(k, str) for k in keywords):
        raise PayloadValidationError('keywords must be a list of strings')

    return body['resume'], resolve_target_role(label, keywords)

@app.route('/health')
def health():
    """Health check endpoint."""
    return jsonify({'status': 'ok'})

@app.route('/roles')
def roles():
    """List the predefined target roles and their keywords."""
    return jsonify({
        'success': True,
        'data': [role.model_dump() for role in JOB_ROLES]
    })

@app.route('/ats-check', methods=['POST'])
def ats_check():
    """Score a resume for ATS compatibility."""
    limiter = get_usage_limiter()
    usage_key = get_usage_key()

    status = limiter.check_limit(usage_key)
    if not status.allowed:
        logger.info(f"ATS check limit reached for {usage_key}")
        return jsonify({
            'error': 'Free tier limit reached',
            'message': f"You have used all {limiter.limit} free ATS checks for today.",
            'upgradeRequired': True
        }), 429

    resume, target_role = parse_check_request()
    score = analyze_ats_score(resume, target_role)
    limiter.increment(usage_key)

    logger.info(f"Scored resume for {usage_key}: {score.overall}/100")
    return jsonify({
        'success': True,
        'data': {
            'score': score.model_dump(),
            'usage': {
                'remaining': limiter.check_limit(usage_key).remaining,
                'limit': limiter.limit
            }
        }
    })

@app.route('/ats-check', methods=['GET'])
def ats_usage():
    """Report remaining quota without consuming any."""
    limiter = get_usage_limiter()
    status = limiter.check_limit(get_usage_key())
    return jsonify({
        'success': True,
        'data': {
            'remaining': status.remaining,
            'limit': limiter.limit
        }
    })

@app.errorhandler(PayloadValidationError)
def payload_invalid(error):
    """Handle missing or malformed request input."""
    return jsonify({'error': str(error)}), 400

@app.errorhandler(InvalidInputError)
def resume_invalid(error):
    """Handle resumes the scoring engine cannot interpret."""
    logger.error(f"Invalid resume input: {error}", exc_info=True)
    return jsonify({
        'error': 'Failed to analyze resume',
        'message': str(error)
    }), 500

@app.errorhandler(404)
def not_found(error):
    """Handle 404 errors with JSON response."""
    return jsonify({'error': 'Endpoint not found'}), 404

@app.errorhandler(405)
def method_not_allowed(error):
    """Handle unsupported methods with JSON response."""
    return jsonify({'error': 'Method not allowed'}), 405

@app.errorhandler(500)
def internal_error(error):
    """Handle 500 errors with JSON response."""
    logger.error(f"Internal server error: {error}")
    return jsonify({'error': 'Internal server error. Please try again later.'}), 500

@app.errorhandler(413)
def request_too_large(error):
    """Handle oversized request bodies with JSON response."""
    return jsonify({'error': 'Request body exceeds 2MB limit'}), 413

if __name__ == '__main__':
    get_usage_limiter()
    app.run(debug=True, use_reloader=False, host='0.0.0.0', port=5000)
