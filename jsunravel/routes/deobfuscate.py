from flask import Blueprint, current_app, jsonify, request

from jsunravel.exceptions import ConfigurationError, ParseError
from jsunravel.models.options import DeobfuscateOptions
from jsunravel.services.deobfuscator import DEFAULT_TRANSFORMERS, deobfuscator
from jsunravel.services.logger_service import logger_service
from jsunravel.transformers import available_transformers

deobfuscate_bp = Blueprint('deobfuscate', __name__)

# Options a remote caller may not set
PRIVATE_OPTIONS = ('logger', 'quiet')


@deobfuscate_bp.route('/deobfuscate', methods=['POST'])
def deobfuscate():
    """Deobfuscate the posted source"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'message': 'JSON body is required'}), 400

    source = data.get('source')
    if not isinstance(source, str) or not source.strip():
        return jsonify({'message': 'source is required'}), 400

    max_bytes = current_app.config.get('MAX_SOURCE_BYTES')
    if max_bytes and len(source.encode('utf-8')) > max_bytes:
        return jsonify({'message': f'source is larger than {max_bytes} bytes'}), 413

    raw_options = data.get('options') or {}
    if not isinstance(raw_options, dict):
        return jsonify({'message': 'options must be an object'}), 400
    private = [key for key in raw_options if key in PRIVATE_OPTIONS]
    if private:
        return jsonify({'message': f'Option not allowed: {private[0]}'}), 400

    try:
        options = DeobfuscateOptions.from_dict(raw_options)
        result = deobfuscator.deobfuscate_source_with_details(source, options)
    except ConfigurationError as e:
        return jsonify({'message': str(e)}), 400
    except ParseError as e:
        return jsonify({
            'message': 'Source could not be parsed',
            'description': getattr(e, 'description', str(e)),
            'lineNumber': getattr(e, 'lineNumber', None),
            'column': getattr(e, 'column', None),
        }), 422
    except Exception as e:
        logger_service.log_error(e, context={'route': 'deobfuscate'})
        return jsonify({'message': 'Deobfuscation failed', 'error': str(e)}), 500

    return jsonify({
        'source': result.source,
        'obfuscations': result.obfuscations,
    })


@deobfuscate_bp.route('/transformers', methods=['GET'])
def get_transformers():
    """List registered transformers and the default pipeline"""
    return jsonify({
        'transformers': available_transformers(),
        'default_pipeline': [name for name, _ in DEFAULT_TRANSFORMERS],
    })
