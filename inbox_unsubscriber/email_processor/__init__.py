"""
Email processing: message records, heuristics, provider access and the bulk scanner.
"""
