# Hackathon Judging Agent - MCP Server Package
#
# Exposes the review pipeline to AI agents and judges over MCP (Model
# Context Protocol). Agents start reviews and read back verdicts through
# the tools registered in server.py.
