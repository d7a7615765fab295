"""SlimCircle API: FastAPI handlers over Clerk, Firestore, Stream Chat and Claude."""
