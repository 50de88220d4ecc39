"""
Order-independent triangular face with value semantics.
"""
from collections import namedtuple

from ..spatial import geometry
from ..spatial.geometry import Point, Polypoint, orientation
from ..utils import round_half_up
from .planar_graph import GridException


class DegenerateTriangle(GridException):
    pass

PointCategories=namedtuple('PointCategories',['shared','unique'])

class Triangle(object):
    """
    Three points, compared as a set.  Collinear points are rejected
    unless check_empty is False, which vertex removal needs for the
    zero-area helper faces it creates along the way.
    """
    __slots__=('p1','p2','p3','_key')

    def __init__(self,p1,p2,p3,check_empty=True):
        self.p1=geometry.as_point(p1)
        self.p2=geometry.as_point(p2)
        self.p3=geometry.as_point(p3)
        if check_empty and geometry.collinear(self.p1,self.p2,self.p3):
            raise DegenerateTriangle("Tried to make a triangle with no area: %s %s %s"%(self.p1,self.p2,self.p3))
        self._key=frozenset([self.p1,self.p2,self.p3])

    def get_points(self):
        return [self.p1,self.p2,self.p3]

    def get_center(self):
        """ rounded centroid, tagged with this triangle """
        pts=self.get_points()
        x=round_half_up(sum(p.x for p in pts)/3.0)
        y=round_half_up(sum(p.y for p in pts)/3.0)
        return Polypoint(x,y,self)

    def get_edge_centers(self):
        """ midpoints of p1-p2, p2-p3, p3-p1 """
        return [Point((a.x+b.x)/2.0,(a.y+b.y)/2.0)
                for a,b in [(self.p1,self.p2),(self.p2,self.p3),(self.p3,self.p1)]]

    def get_edges(self):
        return [(self.p1,self.p2),(self.p2,self.p3),(self.p3,self.p1)]

    def is_degenerate(self):
        return orientation(self.p1,self.p2,self.p3)==0

    def categorize_points(self,other):
        """
        Partition the points of self and other into those common to
        both, and those in exactly one of the two.
        """
        mine=self.get_points()
        theirs=other.get_points()
        shared=[p for p in mine if p in theirs]
        unique=[p for p in mine if p not in theirs] + [p for p in theirs if p not in mine]
        return PointCategories(shared,unique)

    def has_point(self,p):
        return geometry.as_point(p) in self._key

    def has_edge(self,e):
        a,b=geometry.as_edge(e)
        return a!=b and a in self._key and b in self._key

    def contains_point(self,p):
        return geometry.point_in_triangle(geometry.as_point(p),self.p1,self.p2,self.p3)

    def is_intersecting_edge(self,e,strict=True):
        """
        Separating axis test between this triangle and segment e.
        strict: only count segments which pass through the interior.
          Otherwise touching a corner or running along a side counts.
        """
        a,b=geometry.as_edge(e)
        pts=self.get_points()
        if orientation(*pts)<0:
            pts=pts[::-1]
        sides=[orientation(a,b,p) for p in pts]
        if strict:
            if min(sides)>=0 or max(sides)<=0:
                return False
        else:
            if min(sides)>0 or max(sides)<0:
                return False
        for t0,t1 in [(pts[0],pts[1]),(pts[1],pts[2]),(pts[2],pts[0])]:
            oa=orientation(t0,t1,a)
            ob=orientation(t0,t1,b)
            if strict:
                if oa<=0 and ob<=0:
                    return False
            elif oa<0 and ob<0:
                return False
        return True

    def __eq__(self,other):
        if not isinstance(other,Triangle):
            return NotImplemented
        return self._key==other._key
    def __ne__(self,other):
        res=self.__eq__(other)
        if res is NotImplemented:
            return res
        return not res
    def __hash__(self):
        return hash(self._key)

    def equals(self,other):
        return self==other

    def __repr__(self):
        return "Triangle(%s, %s, %s)"%(self.p1,self.p2,self.p3)
