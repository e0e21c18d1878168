"""Redis Lua scripts for the session rate limit.

Each session is a hash with a ``count`` field and a ``created_at`` field
holding the window start. The TTL is set only when a key is created so the
window stays anchored to first use. created_at is stored exactly as passed
in, so callers can compare it as a string to tell windows apart.
"""

# ARGV: max_triggers, ttl, now. Returns {allowed, count, created_at}
RESERVE_SCRIPT = """
    local key = KEYS[1]
    local max_triggers = tonumber(ARGV[1])
    local ttl = tonumber(ARGV[2])

    local current = tonumber(redis.call('HGET', key, 'count') or '0')
    if current >= max_triggers then
        return {0, current, ''}
    end

    local new_count = redis.call('HINCRBY', key, 'count', 1)
    if new_count == 1 then
        redis.call('HSET', key, 'created_at', ARGV[3])
        redis.call('EXPIRE', key, ttl)
    end
    return {1, new_count, redis.call('HGET', key, 'created_at')}
"""

# ARGV: ttl, now. Returns the new count
INCREMENT_SCRIPT = """
    local key = KEYS[1]
    local ttl = tonumber(ARGV[1])

    local new_count = redis.call('HINCRBY', key, 'count', 1)
    if new_count == 1 then
        redis.call('HSET', key, 'created_at', ARGV[2])
        redis.call('EXPIRE', key, ttl)
    end
    return new_count
"""

# ARGV: window_start, ttl, now. Keeps a reserved unit, counting it again in
# a fresh window when the reserved window has expired. Returns the count
COMMIT_SCRIPT = """
    local key = KEYS[1]
    local ttl = tonumber(ARGV[2])

    if redis.call('HGET', key, 'created_at') == ARGV[1] then
        return tonumber(redis.call('HGET', key, 'count'))
    end

    local new_count = redis.call('HINCRBY', key, 'count', 1)
    if new_count == 1 then
        redis.call('HSET', key, 'created_at', ARGV[3])
        redis.call('EXPIRE', key, ttl)
    end
    return new_count
"""

# ARGV: window_start, empty for an unconditional refund. Returns the count;
# the key is dropped at zero and left alone when the window does not match
RELEASE_SCRIPT = """
    local key = KEYS[1]

    local current = tonumber(redis.call('HGET', key, 'count') or '0')
    if current == 0 then
        return 0
    end
    if ARGV[1] ~= '' and redis.call('HGET', key, 'created_at') ~= ARGV[1] then
        return current
    end
    if current <= 1 then
        redis.call('DEL', key)
        return 0
    end
    return redis.call('HINCRBY', key, 'count', -1)
"""
