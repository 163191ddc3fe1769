"""Redis Lua scripts for the rate limit store.

These scripts run atomically on the server, so no other client can observe
or modify the key between the comparison and the write.
"""

import hashlib

# Lua script for atomic compare-and-set with expiration
# KEYS[1] = storage key
# ARGV[1] = expected current value
# ARGV[2] = new value
# ARGV[3] = ttl in milliseconds
# Returns: -1 if the key does not exist, 0 if the value differs, 1 after the swap
CAS_SCRIPT = """
local v = redis.call('GET', KEYS[1])
if v == false then
  return -1
end
if v ~= ARGV[1] then
  return 0
end
redis.call('PSETEX', KEYS[1], ARGV[3], ARGV[2])
return 1
"""

CAS_SHA = hashlib.sha1(CAS_SCRIPT.encode("utf-8")).hexdigest()

CAS_MISSING_KEY = -1
CAS_SWAPPED = 1
