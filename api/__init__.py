"""SafeHarbor community forum API: Vercel functions and shared forum logic."""
